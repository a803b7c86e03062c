from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


JournalStatus = Literal["DRAFT", "POSTED"]
JournalAction = Literal["edit", "post", "delete", "force_draft"]


class JournalLineCreate(BaseModel):
    account_id: int
    description: Optional[str] = Field(None, max_length=255)
    debit: Decimal = Field(Decimal("0"), ge=Decimal("0"), max_digits=14, decimal_places=2)
    credit: Decimal = Field(Decimal("0"), ge=Decimal("0"), max_digits=14, decimal_places=2)


class JournalEntryCreate(BaseModel):
    entry_date: date
    reference: Optional[str] = Field(None, max_length=50)
    entry_type: str = Field("JE", max_length=20)
    description: str = Field(..., min_length=1, max_length=255)
    source_document: str = Field("manual", max_length=50)
    source_document_id: Optional[int] = None
    lines: list[JournalLineCreate]


class JournalEntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    reference: Optional[str] = Field(None, max_length=50)
    entry_type: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    source_document: Optional[str] = Field(None, max_length=50)
    source_document_id: Optional[int] = None
    lines: Optional[list[JournalLineCreate]] = None


class ForceDraftRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    actor: Optional[str] = Field(None, max_length=255)


class BalanceSummaryResponse(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool

    model_config = ConfigDict(from_attributes=True)


class JournalLineResponse(BaseModel):
    id: int
    line_number: int
    account_id: int
    account_code: Optional[str] = None
    account_name: Optional[str] = None
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal


class JournalEntryResponse(BaseModel):
    id: int
    reference: str
    entry_type: str
    entry_date: date
    description: str
    source_document: str
    source_document_id: Optional[int] = None
    status: JournalStatus
    posted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    lines: list[JournalLineResponse]
    totals: BalanceSummaryResponse
    allowed_actions: list[JournalAction]


class JournalEntryListRow(BaseModel):
    id: int
    reference: str
    entry_type: str
    entry_date: date
    description: str
    status: JournalStatus
    posted_at: Optional[datetime] = None
    line_count: int
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class JournalEntryTypeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class JournalEntryTypeResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AuditEventResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    action: str
    actor: Optional[str] = None
    reason: Optional[str] = None
    before_status: Optional[str] = None
    after_status: Optional[str] = None
    created_at: datetime
    event_metadata: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
