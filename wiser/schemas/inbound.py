"""Pydantic models for payloads the service sends to the provider.

Every field is optional so that incomplete payloads still parse; the rules
about which fields are required live in ``wiser.validation.inbound``.
"""

from pydantic import BaseModel, ConfigDict, Field

from wiser.schemas.exchange import ErrorMessage


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# --- PA reject response ---


class RejectReasonCode(_Inbound):
    reject_reason_code: str | None = Field(default=None, alias="rejectreasoncode")
    reject_reason: str | None = Field(default=None, alias="rejectreason")


class RejectBlock(_Inbound):
    """A block that only carries reject reason codes (requester, beneficiary, ...)."""

    comment: str | None = Field(default=None, alias="_comment")
    reject_reason_codes: list[RejectReasonCode | None] | None = Field(
        default=None, alias="rejectreasoncodes"
    )


class ProviderBlock(RejectBlock):
    """A role-specific provider block; the qualifier identifies the role."""

    qualifier: str | None = None


class Service(_Inbound):
    comment: str | None = Field(default=None, alias="_comment")
    procedure_code: str | None = Field(default=None, alias="procedurecode")
    service_trace_number: str | None = Field(default=None, alias="servicetracenumber")
    decision_indicator: str | None = Field(default=None, alias="decisionindicator")
    review_decision_reason_codes: list[str] | None = Field(
        default=None, alias="reviewdecisionreasoncodes"
    )
    program_reason_codes: list[str] | None = Field(default=None, alias="programreasoncodes")
    modified_no_of_units: str | None = Field(default=None, alias="modifiednoofunits")
    modified_date_or_date_range: str | None = Field(
        default=None, alias="modifieddateordaterange"
    )


class PARejectResponse(_Inbound):
    """A prior-authorization reject response."""

    comment: str | None = Field(default=None, alias="_comment")
    notification_type: str | None = Field(default=None, alias="notificationType")
    sender_routing_id: str | None = Field(default=None, alias="senderRoutingId")
    esmd_transaction_id: str | None = Field(default=None, alias="esmdtransactionid")
    contractor_number: str | None = Field(default=None, alias="contractornumber")
    utn: str | None = None
    subscriber_id: str | None = Field(default=None, alias="subscriberid")
    requester: RejectBlock | None = None
    beneficiary: RejectBlock | None = None
    patient_event: RejectBlock | None = Field(default=None, alias="patientevent")
    facility_provider: ProviderBlock | None = Field(default=None, alias="facilityProvider")
    ordering_provider: ProviderBlock | None = Field(default=None, alias="orderingProvider")
    rendering_or_supplier_provider: ProviderBlock | None = Field(
        default=None, alias="renderingOrSupplierProvider"
    )
    referring_provider: ProviderBlock | None = Field(default=None, alias="referringProvider")
    operating_provider: ProviderBlock | None = Field(default=None, alias="operatingProvider")
    attending_provider: ProviderBlock | None = Field(default=None, alias="attendingProvider")
    program_reason_codes: list[str] | None = Field(default=None, alias="programreasoncode")
    services: list[Service] | None = None


# --- Admin error notification ---


class AdminErrorItem(_Inbound):
    esmd_transaction_id: str | None = Field(default=None, alias="esMDTransactionId")
    creation_time: str | None = Field(default=None, alias="creationTime")
    submission_time: str | None = Field(default=None, alias="submissionTime")
    status: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
    error_messages: list[ErrorMessage] | None = Field(default=None, alias="errorMessages")


class AdminErrorNotification(_Inbound):
    """An administrative error notification covering one or more transactions."""

    notification_type: str | None = Field(default=None, alias="notificationType")
    sender_routing_id: str | None = Field(default=None, alias="senderRoutingId")
    notification: list[AdminErrorItem] | None = None
