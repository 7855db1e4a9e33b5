"""Schemas for patient records held in the primary store."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class Patient(BaseModel):
    """
    A patient row as returned by the primary store.

    Column names in the store are camelCase for legacy reasons, except for
    the soft-delete and POS correlation columns.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    first_name: str = Field(default="", alias="firstName")
    middle_name: str | None = Field(default=None, alias="middleName")
    last_name: str = Field(default="", alias="lastName")
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    mrn: str | None = None
    pos_customer_id: str | None = Field(default=None, alias="loyverse_customer_id")
    deleted_at: datetime | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class NewPatient(BaseModel):
    """Fields required to insert a patient into the primary store."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    mrn: str | None = None
    pos_customer_id: str | None = Field(default=None, alias="loyverse_customer_id")
    dob: date
    gender: str
