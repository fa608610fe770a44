"""Contact user repository."""

from __future__ import annotations

import logging

from abeam.models.contact_user import ContactUser
from abeam.repositories.base import BaseRepository
from abeam.storage.database import Database

logger = logging.getLogger(__name__)


class ContactUserRepository(BaseRepository[ContactUser]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "contact_users",
            from_row=ContactUser.from_row,
            to_row=ContactUser.to_row,
            partial_row=ContactUser.partial_row,
        )

    def find_by_email(self, email: str) -> ContactUser | None:
        return self._find_one("email = ?", (email,))

    def find_or_create(self, first_name: str, last_name: str, email: str) -> ContactUser:
        """Return the contact with this email, creating it when absent.

        An existing record is returned as stored; the given names are not
        applied to it.
        """
        existing = self.find_by_email(email)
        if existing is not None:
            return existing
        contact = ContactUser.create(first_name, last_name, email)
        self.create(contact)
        logger.debug("Created contact user %s", contact.id)
        return contact
