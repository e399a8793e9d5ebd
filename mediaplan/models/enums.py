"""
Enumeration definitions for the media plan finance backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, enabling automatic
serialization/deserialization in API responses.
"""

from enum import Enum


class BuyType(str, Enum):
    """
    Pricing model for a line item.

    Determines how a burst's deliverable count is derived from its budget:

    - Unit cost (budget / buy amount): CPC, CPV, CPT, SCREENS, INSERTIONS,
      SPOTS, PANELS, GUARANTEED_LEADS
    - CPM: (budget / buy amount) * 1000
    - FIXED_COST, PACKAGE: a single billable unit
    - BONUS: deliverables are entered manually, budget is always 0
    """
    CPM = "cpm"
    CPC = "cpc"
    CPV = "cpv"
    CPT = "cpt"
    SCREENS = "screens"
    INSERTIONS = "insertions"
    SPOTS = "spots"
    PANELS = "panels"
    GUARANTEED_LEADS = "guaranteed_leads"
    FIXED_COST = "fixed_cost"
    PACKAGE = "package"
    BONUS = "bonus"

    @classmethod
    def parse(cls, value: object) -> "BuyType | None":
        """Resolve a raw form value ("CPM", "fixed cost", ...) to a BuyType."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return None


UNIT_COST_BUY_TYPES = frozenset({
    BuyType.CPC,
    BuyType.CPV,
    BuyType.CPT,
    BuyType.SCREENS,
    BuyType.INSERTIONS,
    BuyType.SPOTS,
    BuyType.PANELS,
    BuyType.GUARANTEED_LEADS,
})

SINGLE_UNIT_BUY_TYPES = frozenset({BuyType.FIXED_COST, BuyType.PACKAGE})


class MediaChannel(str, Enum):
    """
    Media channels with their own line item forms.

    Values match the media type tags carried on billing bursts and the
    keys used in billing schedules.
    """
    TELEVISION = "television"
    RADIO = "radio"
    NEWSPAPER = "newspaper"
    MAGAZINES = "magazines"
    OOH = "ooh"
    CINEMA = "cinema"
    SEARCH = "search"
    SOCIAL_MEDIA = "socialMedia"
    DIGI_DISPLAY = "digiDisplay"
    DIGI_AUDIO = "digiAudio"
    DIGI_VIDEO = "digiVideo"
    BVOD = "bvod"
    INTEGRATION = "integration"
    PROG_DISPLAY = "progDisplay"
    PROG_VIDEO = "progVideo"
    PROG_BVOD = "progBvod"
    PROG_AUDIO = "progAudio"
    PROG_OOH = "progOoh"
    INFLUENCERS = "influencers"

    @property
    def label(self) -> str:
        return MEDIA_CHANNEL_LABELS[self]


MEDIA_CHANNEL_LABELS = {
    MediaChannel.TELEVISION: "Television",
    MediaChannel.RADIO: "Radio",
    MediaChannel.NEWSPAPER: "Newspaper",
    MediaChannel.MAGAZINES: "Magazines",
    MediaChannel.OOH: "OOH",
    MediaChannel.CINEMA: "Cinema",
    MediaChannel.SEARCH: "Search",
    MediaChannel.SOCIAL_MEDIA: "Social Media",
    MediaChannel.DIGI_DISPLAY: "Digital Display",
    MediaChannel.DIGI_AUDIO: "Digital Audio",
    MediaChannel.DIGI_VIDEO: "Digital Video",
    MediaChannel.BVOD: "BVOD",
    MediaChannel.INTEGRATION: "Integration",
    MediaChannel.PROG_DISPLAY: "Programmatic Display",
    MediaChannel.PROG_VIDEO: "Programmatic Video",
    MediaChannel.PROG_BVOD: "Programmatic BVOD",
    MediaChannel.PROG_AUDIO: "Programmatic Audio",
    MediaChannel.PROG_OOH: "Programmatic OOH",
    MediaChannel.INFLUENCERS: "Influencers",
}


class ScheduleSource(str, Enum):
    """Which schedule an accrual amount was read from."""
    DELIVERY = "delivery"
    BILLING = "billing"


class MonthKeyFormat(str, Enum):
    """
    Month bucket key style for proration output.

    - ISO: machine key "YYYY-MM"
    - LABEL: human readable "January 2025"
    """
    ISO = "iso"
    LABEL = "label"


class InvestmentView(str, Enum):
    """
    Which amount of a burst is prorated.

    - BILLING: media billed to the client plus fee (total_amount)
    - DELIVERY: media delivered to the audience plus fee, even when the
      client pays the publisher directly
    """
    BILLING = "billing"
    DELIVERY = "delivery"


class LayoutDropReason(str, Enum):
    """Why a burst span was left off the timeline."""
    OUT_OF_GRID = "out_of_grid"
    COLLISION = "collision"
    INVALID_RANGE = "invalid_range"
