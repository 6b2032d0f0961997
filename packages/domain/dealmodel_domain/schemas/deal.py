"""Deal-level request and result models for the dispatcher."""

from typing import Optional, Tuple
from pydantic import Field

from .base import DomainModel
from .config import EngineCFG
from .dcf import DCFInputs, DCFResults
from .lbo import LBOInputs, LBOResults
from .waterfall import WaterfallInputs, WaterfallResults


# Structuring types seen on deals; unknown types fall back to a DCF.
LBO_STRUCTURE = "LBO_STRUCTURE"
SINGLE_ASSET_CONTINUATION = "SINGLE_ASSET_CONTINUATION"
MULTI_ASSET_CONTINUATION = "MULTI_ASSET_CONTINUATION"
CO_INVESTMENT = "CO_INVESTMENT"
NEW_INVESTMENT = "NEW_INVESTMENT"


class DealModelRequest(DomainModel):
    """Everything needed to model one deal.

    Only the inputs for the engines the deal type requires are mandatory;
    optional engines run when their inputs are present.
    """

    deal_id: Optional[str] = None

    deal_type: str = Field(
        description="Structuring type, e.g. 'LBO_STRUCTURE' or 'SINGLE_ASSET_CONTINUATION'"
    )

    dcf: Optional[DCFInputs] = None
    lbo: Optional[LBOInputs] = None
    waterfall: Optional[WaterfallInputs] = None

    config: EngineCFG = Field(default_factory=EngineCFG)


class DealModelResults(DomainModel):
    """Results of every engine that ran for a deal."""

    deal_id: Optional[str] = None
    deal_type: str
    engines_run: Tuple[str, ...]
    dcf: Optional[DCFResults] = None
    lbo: Optional[LBOResults] = None
    waterfall: Optional[WaterfallResults] = None
