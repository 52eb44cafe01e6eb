from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class LoanPhase(IntEnum):
    REGISTRATION = 1
    CAPTURING = 2
    APPROVAL = 3
    DISBURSEMENT = 4


class LoanStatus(str, Enum):
    REGISTERED = "registered"
    CAPTURED = "captured"
    APPROVED = "approved"
    DISBURSED = "disbursed"
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"


class PaymentMode(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class DisbursementMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CHEQUE = "cheque"


class MaritalStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class IdType(str, Enum):
    GHANA_CARD = "Ghana Card"
    VOTERS_ID = "Voters ID"
    PASSPORT = "Passport"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class LoanRegisterRequest(BaseModel):
    fullname: str = Field(min_length=2, max_length=255)
    contact: str = Field(min_length=10, max_length=20)
    email: EmailStr | None = None
    location: str = Field(min_length=1, max_length=255)
    landmark: str | None = None
    business: str | None = None
    requested_amount: Decimal = Field(gt=0)


class WitnessInput(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    fullname: str = Field(min_length=1, max_length=255)
    contact: str = Field(min_length=1, max_length=50)
    marital_status: str | None = None
    email: EmailStr | None = None
    occupation: str | None = None
    residence_address: str | None = None
    residence_gps: str | None = None
    id_type: IdType | None = None
    id_number: str | None = None
    id_front_image: str | None = None
    id_back_image: str | None = None
    profile_pic: str | None = None


class LocationInput(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=255)
    gps_address: str | None = None
    region: str | None = None


class LoanCaptureRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    dob: str | None = None
    marital_status: MaritalStatus | None = None
    profile_image: str | None = None
    occupation: str | None = None
    id_type: IdType | None = None
    id_number: str | None = None
    id_front_image: str | None = None
    id_back_image: str | None = None
    witnesses: list[WitnessInput] | None = None
    business_locations: list[LocationInput] | None = None
    residences: list[LocationInput] | None = None


class LoanApproveRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    approved_amount: Decimal = Field(gt=0)
    loan_duration: int = Field(ge=1, le=520)
    payment_mode: PaymentMode
    payment_start_date: date
    payment_end_date: date | None = None
    processing_fee: Decimal = Field(default=Decimal("0"), ge=0)
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.payment_end_date is not None and self.payment_end_date < self.payment_start_date:
            raise ValueError("payment_end_date must not be before payment_start_date")
        return self


class LoanDisburseRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    disbursement_method: DisbursementMethod
    disbursement_notes: str | None = None


class LoanEditRequest(BaseModel):
    """Partial update; ``email``, ``landmark`` and ``business`` may be cleared with null."""

    fullname: str | None = Field(default=None, min_length=2, max_length=255)
    contact: str | None = Field(default=None, min_length=10, max_length=20)
    email: EmailStr | None = None
    location: str | None = Field(default=None, min_length=1, max_length=255)
    landmark: str | None = None
    business: str | None = None
    requested_amount: Decimal | None = Field(default=None, gt=0)


class LoanRepaymentCreateRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_date: date
    notes: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ClientDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fullname: str
    contact: str
    email: str | None = None
    location: str
    landmark: str | None = None
    business: str | None = None
    created_by: int | None = None
    created_at: datetime | None = None


class LoanDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    requested_amount: Decimal
    approved_amount: Decimal | None = None
    status: str
    phase: int
    registered_by: int | None = None
    registration_date: datetime | None = None
    created_at: datetime | None = None


class LoanRegisterResponse(BaseModel):
    client: ClientDTO
    loan: LoanDTO


class WitnessDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    fullname: str
    contact: str
    marital_status: str | None = None
    email: str | None = None
    occupation: str | None = None
    residence_address: str | None = None
    residence_gps: str | None = None
    id_type: str | None = None
    id_number: str | None = None
    id_front_image: str | None = None
    id_back_image: str | None = None
    profile_pic: str | None = None


class LocationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    gps_address: str | None = None
    region: str | None = None


class RegisteredSection(BaseModel):
    client_id: int
    client_name: str | None = None
    client_contact: str | None = None
    client_email: str | None = None
    client_location: str | None = None
    client_landmark: str | None = None
    client_business: str | None = None
    requested_amount: Decimal
    registered_by: int | None = None
    registered_by_name: str | None = None
    registration_date: datetime | None = None


class CapturedSection(BaseModel):
    captured_by: int | None = None
    captured_by_name: str | None = None
    capturing_date: datetime | None = None
    dob: str | None = None
    marital_status: str | None = None
    occupation: str | None = None
    profile_image: str | None = None
    id_type: str | None = None
    id_number: str | None = None
    id_front_image: str | None = None
    id_back_image: str | None = None
    witnesses: list[WitnessDTO] = Field(default_factory=list)
    business_locations: list[LocationDTO] = Field(default_factory=list)
    residences: list[LocationDTO] = Field(default_factory=list)


class ApprovedSection(BaseModel):
    approved_amount: Decimal | None = None
    loan_duration: int | None = None
    payment_mode: str | None = None
    processing_fee: Decimal | None = None
    interest_rate: Decimal | None = None
    payment_start_date: date | None = None
    payment_end_date: date | None = None
    approved_by: int | None = None
    approved_by_name: str | None = None
    approval_date: datetime | None = None


class DisbursementSection(BaseModel):
    disbursed_by: int | None = None
    disbursed_by_name: str | None = None
    disbursement_date: datetime | None = None
    disbursement_method: str | None = None
    disbursement_notes: str | None = None


class LoanStatusSection(BaseModel):
    status: str
    phase: int
    payment_schedule_start: date | None = None


class StructuredLoanView(BaseModel):
    id: int
    registered: RegisteredSection
    captured: CapturedSection
    approved: ApprovedSection
    disbursement: DisbursementSection
    loan_status: LoanStatusSection
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoanListStats(BaseModel):
    total_registrations: int = 0
    registered: int = 0
    captured: int = 0
    total_requested: Decimal = Decimal("0")


class LoanListResponse(BaseModel):
    loans: list[StructuredLoanView]
    total: int
    total_pages: int
    page: int
    limit: int
    stats: LoanListStats


class InstallmentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    amount: Decimal
    due_date: date
    payment_date: date
    status: str


class LoanPaymentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    amount: Decimal
    payment_date: date
    received_by: int | None = None
    received_by_name: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class LoanRepaymentRecordResponse(BaseModel):
    amount: Decimal
    payment_date: date
    remaining_balance: Decimal
    total_paid: Decimal
    next_due_amount: Decimal


class LoanBalanceResponse(BaseModel):
    total_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    next_due_amount: Decimal
