"""In-memory address book for tests and local development."""

from protean.exceptions import ObjectNotFoundError

from shipping.address.port import Address, AddressBookPort


class FakeAddressBook(AddressBookPort):
    def __init__(self):
        self._addresses: dict[str, Address] = {}

    def register(self, address: Address) -> Address:
        self._addresses[address.address_id] = address
        return address

    def clear(self) -> None:
        self._addresses.clear()

    def get_by_id(self, address_id: str) -> Address:
        try:
            return self._addresses[str(address_id)]
        except KeyError:
            raise ObjectNotFoundError({"address_id": [f"Address {address_id} does not exist"]}) from None
