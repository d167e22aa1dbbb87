"""
This module is to be used with loguru to remove potentially sensitive information
such as the user's name or a Steam password passed on a command line.
"""

import re


def obfuscate_message(
    message: str, anonymize_path: bool = True, redact_password: bool = True
) -> str:
    """
    Obfuscate the message such that it does not reveal user information.

    The message may contain a path, in which case the path will be anonymized.
    It may also contain a logged command line with a password argument.

    Args:
        message: The message to obfuscate.
        anonymize_path: Whether to anonymize the path in the message.
        redact_password: Whether to hide the value following a -password argument.

    Returns:
        The obfuscated message.
    """
    if anonymize_path:
        message = _anonymize_path(message)
    if redact_password:
        message = _redact_password(message)

    return message


def _anonymize_path(message: str) -> str:
    """
    Anonymize the path in the message such that
    it does not reveal user information such as usernames.

    The input message may or may not contain a path at all.

    OS agnostic.
    """
    # Windows - Only remove the username, keep the drive letter
    message = re.sub(r"([A-Z]:\\Users\\)[^\\]+\\", r"\1...\\", message)
    # Escaped backslashes, as in a repr() of a list of arguments
    message = re.sub(r"([A-Z]:\\\\Users\\\\)[^\\]+\\\\", r"\1...\\\\", message)
    # Linux - Only remove the username
    message = re.sub(r"/home/[^/]+/", r"/home/.../", message)
    # macOS
    message = re.sub(r"/Users/[^/]+/", r"/Users/.../", message)

    return message


def _redact_password(message: str) -> str:
    """
    Replace the value after -password, both in a plain command line
    and in a logged list of arguments.
    """
    # ['-password', 'secret']
    message = re.sub(
        r"(['\"]-password['\"],\s*)(['\"])(?:(?!\2).)*\2", r"\1\2***\2", message
    )
    # -password secret
    message = re.sub(r"(-password\s+)(?!['\"],)[^\s'\",\]]+", r"\1***", message)

    return message
