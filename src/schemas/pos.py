"""Schemas for the POS (Loyverse) customer API."""

from pydantic import BaseModel, ConfigDict, Field

# Field length limits enforced by the POS customer API
NAME_MAX_LENGTH = 64
EMAIL_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 15
ADDRESS_MAX_LENGTH = 192
CUSTOMER_CODE_MAX_LENGTH = 40


class PosCustomer(BaseModel):
    """
    A customer in the POS directory.

    `id` is absent when creating a customer and present when updating one.
    Visit aggregates are maintained by the POS itself and are never sourced
    from the clinic.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country_code: str | None = None
    customer_code: str | None = None
    note: str | None = None
    first_visit: str | None = None
    last_visit: str | None = None
    total_visits: int = 0
    total_spent: float = 0
    total_points: float = 0

    def to_payload(self) -> dict:
        """Request body for an upsert; absent fields are omitted."""
        return self.model_dump(exclude_none=True)


class CustomerPage(BaseModel):
    """One page of the cursor-paginated customer listing."""

    customers: list[PosCustomer] = Field(default_factory=list)
    cursor: str | None = None
