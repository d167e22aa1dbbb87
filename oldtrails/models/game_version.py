import msgspec


class GameVersion(msgspec.Struct, frozen=True):
    """
    A historical Trailmakers release that can be downloaded from its depot manifest.
    """

    name: str
    manifest_id: str
    requires_modified_steam: bool = False


GAME_VERSIONS: tuple[GameVersion, ...] = (
    GameVersion("1.9.5 PvP Update: Part 1", "3088992314067472200"),
    GameVersion("1.9 Pedal to the Metal", "4412562610966151777"),
    GameVersion("1.8 Waves, Camera, Action", "4007835113837207542"),
    GameVersion("1.7.4 Now This is Podracing", "7499996565839882351"),
    GameVersion("1.7 Spacebound", "4376696831141480241"),
    GameVersion("1.6 Wings and Weapons", "7868502592313023064"),
    GameVersion("1.5 Decals", "6418274266282092041"),
    GameVersion("1.4.2 Mirror Mode", "8084832536635904913"),
    GameVersion("1.3 Mod Makers", "752294084919392246"),
    GameVersion("1.2 Perfect Pitch", "7125249926418413647"),
    GameVersion("1.1 Summer Party", "7622037960763500709"),
    GameVersion("1.0.4 Centrifuge", "7797596154752996883"),
    GameVersion("1.0 Release", "2589706790386909403"),
    GameVersion("0.8.1 Tailwind", "2174733110758165403"),
    GameVersion("0.8.0 Rally", "6322044058692429718"),
    GameVersion("0.7.3 Happy Holidays", "1401415892018513847"),
    GameVersion("0.7.2 The Danger Zone", "6509328320731640329"),
    GameVersion("0.7.0 BLOCKS! BLOCKS! BLOCKS!", "292833379719092558"),
    GameVersion("0.6.1 Logic Update", "5774605827881735611"),
    GameVersion("0.6 Summer Update", "8321905748150428964"),
    GameVersion("0.5.2 Submarine (Water Update #2)", "4254061677353968400"),
    GameVersion("0.5.1 Build A Boat (Water Update #1)", "5339152136185287284"),
    GameVersion("0.5 The Quality Update", "9110008508980233200"),
    GameVersion("0.4.2 Race Island", "4955326297487392530"),
    GameVersion("0.4.1 Rings of Fire", "2127974181683886289"),
    GameVersion("0.4.0 Early Access", "4365140693703019383"),
    GameVersion("Alpha Demo", "1105845463103535907"),
)


def get_version(name_or_manifest: str) -> GameVersion | None:
    """
    Look up a catalogue entry by display name or depot manifest id.

    Name matching is case-insensitive. A unique prefix of the name
    is accepted as well, so "1.7.4" finds "1.7.4 Now This is Podracing".

    :param name_or_manifest: Display name, name prefix or manifest id
    :return: The matching GameVersion, or None
    """
    query = name_or_manifest.strip()
    if not query:
        return None
    lowered = query.lower()
    for version in GAME_VERSIONS:
        if version.manifest_id == query or version.name.lower() == lowered:
            return version
    candidates = [v for v in GAME_VERSIONS if v.name.lower().startswith(lowered)]
    if len(candidates) == 1:
        return candidates[0]
    return None
