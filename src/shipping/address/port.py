"""Address book port — read-only lookup of customer delivery addresses.

Addresses are owned by the customer context. Dispatch only needs the
administrative areas used for coverage matching, plus an optional route hint
recorded when the address was first verified.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Address:
    address_id: str
    province: str
    district: str = ""
    subdistrict: str = ""
    postal_code: str = ""
    route_hint: str | None = None


class AddressBookPort(ABC):
    """Abstract interface for address book adapters."""

    @abstractmethod
    def get_by_id(self, address_id: str) -> Address:
        """Return the address.

        Raises:
            ObjectNotFoundError: when no address exists with this id.
        """
        ...
