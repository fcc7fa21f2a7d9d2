from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import db.crud as crud
from db.models import Customer


@dataclass
class GlobalState:
    """
    Centralized client state shared by screens.

    Fields:
      - customer: the authenticated customer, or None before login

    Screens read ``cid`` and pass it explicitly to every cart/order call.
    """

    customer: Optional[Customer] = None

    @property
    def cid(self) -> Optional[int]:
        return self.customer.cid if self.customer else None

    @property
    def client_type(self) -> Optional[str]:
        return self.customer.client_type if self.customer else None

    @property
    def logged_in(self) -> bool:
        return self.customer is not None

    async def login(self, email: str, pwd: str) -> Customer:
        """Authenticate and remember the customer. Raises UnauthenticatedError."""
        self.customer = await crud.authenticate(email, pwd)
        return self.customer

    def logout(self) -> None:
        self.customer = None
