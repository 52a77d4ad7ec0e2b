import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from .models import DocumentType, FounderStatus, Jurisdiction, SignatureStatus, TaskStatus


class LoginRequest(BaseModel):
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    jurisdiction: Jurisdiction
    description: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    jurisdiction: Optional[Jurisdiction] = None
    description: Optional[str] = None


class FounderCreate(BaseModel):
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    equity_percentage: Optional[int] = Field(default=None, ge=0, le=100)


class FounderUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    equity_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    status: Optional[FounderStatus] = None
    id_uploaded: Optional[bool] = None


class InvestorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    amount: Optional[int] = Field(default=None, ge=0)


class InvestorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    amount: Optional[int] = Field(default=None, ge=0)
    status: Optional[SignatureStatus] = None


class DocumentCreate(BaseModel):
    type: DocumentType
    title: str = Field(min_length=1, max_length=255)
    content: Optional[str] = None


class DocumentUpdate(BaseModel):
    # status moves only through the validate / send-for-signature / sign actions
    type: Optional[DocumentType] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None


class SignerIn(BaseModel):
    email: EmailStr
    name: Optional[str] = None


class SendForSignature(BaseModel):
    signers: List[SignerIn]
    requester_name: Optional[str] = None


class TaskCreate(BaseModel):
    description: str = Field(min_length=1)
    category: Optional[str] = Field(default=None, max_length=100)
    assignee_id: Optional[uuid.UUID] = None
    due_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, max_length=100)
    assignee_id: Optional[uuid.UUID] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None


class CapTableEntryCreate(BaseModel):
    holder_id: str
    holder_type: str = Field(pattern="^(founder|investor)$")
    holder_name: str = Field(min_length=1, max_length=255)
    shares: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)


class ChatSend(BaseModel):
    content: str = Field(min_length=1)


class ConversationIn(BaseModel):
    conversation: str = Field(min_length=1)


class TextToSpeech(BaseModel):
    text: str = Field(min_length=1, max_length=4096)
    voice: Optional[str] = None
