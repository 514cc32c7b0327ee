"""Intent + Command schema - the only shapes that leave the AI layer.

AI output is loaded into these models; anything that does not fit is either
coerced (aliases, numeric strings, negative prices) or dropped so the text
extractor can fill the gap.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class IntentType(str, Enum):
    """What the operator wants: run something, talk, or both."""
    COMMAND = "COMMAND"
    CONVERSATION = "CONVERSATION"
    MIXED = "MIXED"


class ActionType(str, Enum):
    """Closed set of dispatchable actions. Cannot be extended by the LLM."""
    CREATE_ORDER = "create_order"
    DELETE_ORDER = "delete_order"
    CONFIRM_ORDER = "confirm_order"
    QUERY_ORDER = "query_order"
    QUERY_SALES = "query_sales"
    QUERY_INVENTORY = "query_inventory"
    ANALYZE_ORDER = "analyze_order"
    ANALYZE_FINANCE = "analyze_finance"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value) -> Optional["ActionType"]:
        """None for empty input, UNKNOWN for a non-empty name outside the vocabulary."""
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


class OrderType(str, Enum):
    SALE = "SALE"
    PURCHASE = "PURCHASE"

    @classmethod
    def from_raw(cls, value) -> Optional["OrderType"]:
        """Accepts SALE/PURCHASE plus the legacy customer/purchase spellings."""
        if value is None:
            return None
        text = str(value).strip().upper()
        if text in ("SALE", "CUSTOMER", "SALES", "销售"):
            return cls.SALE
        if text in ("PURCHASE", "采购"):
            return cls.PURCHASE
        return None


class IntentResult(BaseModel):
    type: IntentType = IntentType.CONVERSATION
    confidence: float = 0.5
    extracted_command: str = ""

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)


class ProductLine(BaseModel):
    """One order line. A price-only line (name "", quantity 0) is valid here.

    Completeness (name present, quantity > 0) is checked by command
    validation, not at construction.
    """
    name: str = ""
    quantity: int = 0
    unit_price: float = 0.0

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v) -> int:
        if v is None or v == "":
            return 0
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return 0

    @field_validator("unit_price", mode="before")
    @classmethod
    def clamp_price(cls, v) -> float:
        """Negative or unreadable prices become 0."""
        if v is None or v == "":
            return 0.0
        try:
            price = float(v)
        except (TypeError, ValueError):
            return 0.0
        return price if price >= 0 else 0.0

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


class Command(BaseModel):
    """Validated, structured request for the dispatcher.

    Fields:
        action: which handler runs
        order_type: SALE/PURCHASE, set for create_order before dispatch
        customer: customer (SALE) or supplier (PURCHASE) name
        products: order lines for create_order
        order_id / freight: delete_order and confirm_order
        keyword / time_range / limit: query filters
        original_input: operator's sentence, verbatim
        source: "llm", "fallback" or "merged"
    """
    action: ActionType
    order_type: Optional[OrderType] = None
    customer: str = ""
    products: List[ProductLine] = Field(default_factory=list)
    order_id: Optional[int] = None
    freight: Optional[float] = None
    keyword: str = ""
    time_range: str = ""
    limit: int = 10
    original_input: str = ""
    source: str = "llm"
    raw_action: str = ""  # AI action name when it fell outside the vocabulary

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
