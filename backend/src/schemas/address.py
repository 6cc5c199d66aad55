"""Pydantic schemas for the address book."""
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

AddressLabel = Literal["Casa", "Trabalho", "Outro"]


class Address(BaseModel):
    """A saved delivery address. At most one per profile has ``is_default``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    label: AddressLabel = "Casa"
    cep: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    is_default: bool = Field(default=False, alias="isDefault")

    @field_validator(
        "cep", "street", "number", "complement", "neighborhood", "city", "state", mode="before",
    )
    @classmethod
    def null_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v

    @field_validator("label", mode="before")
    @classmethod
    def null_label_to_default(cls, v: str | None) -> str:
        return "Casa" if v is None else v

    @property
    def display_line(self) -> str:
        """Street line: ``Rua X, 10 - Apto 2 - Centro``."""
        first = self.street
        if self.number:
            first = f"{first}, {self.number}"
        parts = [first]
        if self.complement:
            parts.append(self.complement)
        if self.neighborhood:
            parts.append(self.neighborhood)
        return " - ".join(parts)

    @property
    def city_state_line(self) -> str:
        """Locality line: ``Maringá - PR - 87020-025``."""
        cep = f"{self.cep[:5]}-{self.cep[5:]}" if len(self.cep) == 8 else self.cep
        return " - ".join(p for p in (self.city, self.state, cep) if p)


class AddressPayload(BaseModel):
    """Body sent to create or fully update an address."""

    model_config = ConfigDict(populate_by_name=True)

    label: AddressLabel = "Casa"
    cep: str
    street: str
    number: str
    complement: str = ""
    neighborhood: str
    city: str
    state: str
    is_default: bool = Field(default=False, alias="isDefault")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the API's camelCase field names."""
        return self.model_dump(by_alias=True)


@dataclass
class AddressForm:
    """Editable address form state. The CEP keeps its display mask."""

    label: AddressLabel = "Casa"
    cep: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    is_default: bool = False

    @classmethod
    def from_address(cls, address: Address) -> "AddressForm":
        """Pre-fill the form for editing an existing address."""
        cep = address.cep
        if len(cep) == 8:
            cep = f"{cep[:5]}-{cep[5:]}"
        return cls(
            label=address.label,
            cep=cep,
            street=address.street,
            number=address.number,
            complement=address.complement,
            neighborhood=address.neighborhood,
            city=address.city,
            state=address.state,
            is_default=address.is_default,
        )


class PostalAddress(BaseModel):
    """Fields returned by a postal-code lookup."""

    street: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    complement: str = ""
