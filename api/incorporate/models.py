import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, JSON
from sqlmodel import SQLModel, Field, Relationship


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


def _created_at():
    return Field(default_factory=get_datetime_utc, sa_type=DateTime(timezone=True))  # type: ignore


def _updated_at():
    return Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
        sa_column_kwargs={"onupdate": get_datetime_utc},
    )


class Jurisdiction(str, Enum):
    delaware = "delaware"
    france = "france"


class DocumentType(str, Enum):
    nda = "nda"
    pre_founder_agreement = "pre_founder_agreement"
    ip_assignment = "ip_assignment"
    advisor_agreement = "advisor_agreement"
    terms_conditions = "terms_conditions"
    privacy_policy = "privacy_policy"
    contractor_agreement = "contractor_agreement"
    safe = "safe"
    certificate_incorporation = "certificate_incorporation"
    bylaws = "bylaws"
    board_consent = "board_consent"


class DocumentStatus(str, Enum):
    drafting = "drafting"
    validating = "validating"
    signing = "signing"
    active = "active"


class SignatureStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    signed = "signed"


class FounderStatus(str, Enum):
    invited = "invited"
    pending_signature = "pending_signature"
    active = "active"


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class SignerType(str, Enum):
    founder = "founder"
    investor = "investor"
    external = "external"


class ChatRole(str, Enum):
    user = "user"
    assistant = "assistant"


# ---------- users ----------

class UserBase(SQLModel):
    email: str = Field(unique=True, index=True, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    profile_image_url: Optional[str] = None


class User(UserBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.email


class UserPublic(UserBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None


# ---------- companies ----------

class CompanyBase(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    jurisdiction: Jurisdiction
    description: Optional[str] = None


class Company(CompanyBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True)
    health_score: int = 0
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    founders: list["Founder"] = Relationship(back_populates="company", cascade_delete=True)
    investors: list["Investor"] = Relationship(back_populates="company", cascade_delete=True)
    documents: list["Document"] = Relationship(back_populates="company", cascade_delete=True)
    tasks: list["Task"] = Relationship(back_populates="company", cascade_delete=True)
    cap_table_entries: list["CapTableEntry"] = Relationship(back_populates="company", cascade_delete=True)
    chat_messages: list["ChatMessage"] = Relationship(back_populates="company", cascade_delete=True)


class CompanyPublic(CompanyBase):
    id: uuid.UUID
    user_id: uuid.UUID
    health_score: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- founders ----------

class FounderBase(SQLModel):
    email: str = Field(max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=255)
    equity_percentage: Optional[int] = Field(default=None, ge=0, le=100)


class Founder(FounderBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    status: FounderStatus = FounderStatus.invited
    id_uploaded: bool = False
    invitation_sent_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    delivery_error: Optional[str] = None
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    company: Optional[Company] = Relationship(back_populates="founders")

    @property
    def display_name(self) -> str:
        return self.first_name or self.email


class FounderPublic(FounderBase):
    id: uuid.UUID
    company_id: uuid.UUID
    status: FounderStatus
    id_uploaded: bool
    invitation_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- documents ----------

class DocumentBase(SQLModel):
    type: DocumentType
    title: str = Field(min_length=1, max_length=255)
    content: Optional[str] = None


class Document(DocumentBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    status: DocumentStatus = DocumentStatus.drafting
    validation_errors: Optional[list] = Field(default=None, sa_type=JSON)
    index_point_id: Optional[str] = None
    activated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    company: Optional[Company] = Relationship(back_populates="documents")
    signatures: list["DocumentSignature"] = Relationship(back_populates="document", cascade_delete=True)


class DocumentPublic(DocumentBase):
    id: uuid.UUID
    company_id: uuid.UUID
    status: DocumentStatus
    validation_errors: Optional[list] = None
    index_point_id: Optional[str] = None
    activated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DocumentSignature(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    document_id: uuid.UUID = Field(foreign_key="document.id", nullable=False, ondelete="CASCADE", index=True)
    signer_email: str = Field(max_length=255)
    signer_name: Optional[str] = Field(default=None, max_length=255)
    signer_type: SignerType = SignerType.external
    status: SignatureStatus = SignatureStatus.pending
    magic_token: str = Field(unique=True, index=True, max_length=255)
    notified_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    delivery_error: Optional[str] = None
    signed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = _created_at()

    document: Optional[Document] = Relationship(back_populates="signatures")


class SignaturePublic(SQLModel):
    """Signature as shown to the company; the token itself is never echoed back."""
    id: uuid.UUID
    document_id: uuid.UUID
    signer_email: str
    signer_name: Optional[str] = None
    signer_type: SignerType
    status: SignatureStatus
    notified_at: Optional[datetime] = None
    delivery_error: Optional[str] = None
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


# ---------- investors ----------

class InvestorBase(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255)
    amount: Optional[int] = Field(default=None, ge=0)


class Investor(InvestorBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    status: SignatureStatus = SignatureStatus.pending
    safe_document_id: Optional[uuid.UUID] = Field(default=None, foreign_key="document.id", ondelete="SET NULL")
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    company: Optional[Company] = Relationship(back_populates="investors")


class InvestorPublic(InvestorBase):
    id: uuid.UUID
    company_id: uuid.UUID
    status: SignatureStatus
    safe_document_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- tasks / cap table / chat ----------

class Task(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    description: str
    category: Optional[str] = Field(default=None, max_length=100)
    assignee_id: Optional[uuid.UUID] = Field(default=None, foreign_key="founder.id", ondelete="SET NULL")
    status: TaskStatus = TaskStatus.pending
    due_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    company: Optional[Company] = Relationship(back_populates="tasks")


class CapTableEntry(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    holder_id: str
    holder_type: str = Field(max_length=50)  # founder|investor
    holder_name: str = Field(max_length=255)
    shares: int
    percentage: int
    created_at: Optional[datetime] = _created_at()
    updated_at: Optional[datetime] = _updated_at()

    company: Optional[Company] = Relationship(back_populates="cap_table_entries")


class ChatMessage(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="company.id", nullable=False, ondelete="CASCADE", index=True)
    role: ChatRole
    content: str
    index_point_id: Optional[str] = None
    created_at: Optional[datetime] = _created_at()

    company: Optional[Company] = Relationship(back_populates="chat_messages")
