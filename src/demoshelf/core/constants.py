"""
demoshelf - Constants

Closed catalogs used across the library: demo sources, demo types,
competitive maps, analysis modes and match verdicts.
"""

from enum import Enum, IntEnum, StrEnum

# File extension of replay files discovered by library scans
DEMO_EXTENSION = ".dem"


class DemoSource(StrEnum):
    """
    Platform or league that produced a demo.

    Unknown values never fall through: they resolve to DEFAULT_SOURCE.
    """

    VALVE = "valve"  # Valve Matchmaking
    ESEA = "esea"
    EBOT = "ebot"  # eBot match servers
    FACEIT = "faceit"
    CEVO = "cevo"

    @classmethod
    def from_name(cls, value: object) -> "DemoSource":
        """Resolve a source name, mapping unknown names and non-strings to the default source."""
        if isinstance(value, str) and value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return DEFAULT_SOURCE


DEFAULT_SOURCE = DemoSource.VALVE


class DemoType(StrEnum):
    """
    Demo recording type.

    GOTV demos contain the whole match, POV demos a single player's view.
    """

    GOTV = "gotv"
    POV = "pov"


class CompetitiveMap(StrEnum):
    """Maps tracked by the per-map statistics."""

    DUST2 = "de_dust2"
    MIRAGE = "de_mirage"
    INFERNO = "de_inferno"
    TRAIN = "de_train"
    OVERPASS = "de_overpass"
    CACHE = "de_cache"
    COBBLESTONE = "de_cbble"
    NUKE = "de_nuke"

    @property
    def display_name(self) -> str:
        return MAP_DISPLAY_NAMES[self]


MAP_DISPLAY_NAMES = {
    CompetitiveMap.DUST2: "Dust2",
    CompetitiveMap.MIRAGE: "Mirage",
    CompetitiveMap.INFERNO: "Inferno",
    CompetitiveMap.TRAIN: "Train",
    CompetitiveMap.OVERPASS: "Overpass",
    CompetitiveMap.CACHE: "Cache",
    CompetitiveMap.COBBLESTONE: "Cobblestone",
    CompetitiveMap.NUKE: "Nuke",
}


class AnalysisMode(StrEnum):
    """Analysis pass requested for a demo. Exactly one per analysis call."""

    FULL = "full"
    PLAYER_POSITION = "player_position"
    HEATMAP = "heatmap"


class MatchVerdict(IntEnum):
    """Match outcome for the selected account."""

    LOSS = -1
    DRAW = 0
    WIN = 1


class Team(int, Enum):
    """CS team numbers."""

    UNASSIGNED = 0
    SPECTATOR = 1
    TERRORIST = 2
    CT = 3


# Server identifiers for source detection
SOURCE_IDENTIFIERS = {
    DemoSource.FACEIT: ["FACEIT", "faceit.com"],
    DemoSource.ESEA: ["ESEA", "esea.net", "play.esea.net"],
    DemoSource.EBOT: ["eBot"],
    DemoSource.CEVO: ["CEVO", "cevo.com"],
}

# Filename patterns for source detection
FILENAME_PATTERNS = {
    DemoSource.VALVE: ["match730_"],
    DemoSource.FACEIT: ["faceit_", "faceit-"],
    DemoSource.ESEA: ["esea_"],
    DemoSource.CEVO: ["cevo_"],
}

# Client name GOTV relays record under
GOTV_CLIENT_NAMES = ("GOTV", "SourceTV")


def detect_source(server_name: str, file_name: str = "") -> DemoSource:
    """
    Guess the demo source from the server name and file name.

    Server identifiers win over file name patterns.
    """
    server_lower = (server_name or "").lower()
    for source, identifiers in SOURCE_IDENTIFIERS.items():
        if any(ident.lower() in server_lower for ident in identifiers):
            return source

    name_lower = (file_name or "").lower()
    for source, patterns in FILENAME_PATTERNS.items():
        if any(name_lower.startswith(pattern) for pattern in patterns):
            return source

    return DEFAULT_SOURCE


def detect_demo_type(client_name: str) -> DemoType:
    """A demo recorded by anything but a GOTV client is a POV demo."""
    if any(name.lower() in (client_name or "").lower() for name in GOTV_CLIENT_NAMES):
        return DemoType.GOTV
    return DemoType.POV
