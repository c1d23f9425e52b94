"""Customer address lookup.

Addresses live in another service; dispatch only reads the province,
district and route hint. ``ADDRESS_BOOK_ADAPTER`` picks the adapter and
``fake`` is the in-memory book used in tests and local runs.
"""

import os

from shipping.address.port import AddressBookPort

_book: AddressBookPort | None = None


def get_address_book() -> AddressBookPort:
    global _book
    if _book is None:
        name = os.environ.get("ADDRESS_BOOK_ADAPTER", "fake")
        if name != "fake":
            raise ValueError(f"Unknown address book adapter: {name}")
        from shipping.address.fake_adapter import FakeAddressBook

        _book = FakeAddressBook()
    return _book


def reset_address_book() -> None:
    global _book
    _book = None
