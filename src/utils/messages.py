from textual.message import Message

from db.models import Customer


class QuitRequestedMessage(Message):
    """Posted on the app once the customer confirmed quitting."""

    bubble = True


class UserLogoutMessage(Message):
    """Posted on the app when the customer logs out; the session is dropped."""

    bubble = True


class UserLoginMessage(Message):
    """
    Posted on the app after a successful login.
    Sidebars re-render with the customer's details and pricing tier.
    """

    bubble = True

    def __init__(self, customer: Customer) -> None:
        super().__init__()
        self.customer = customer


class CartChangedMessage(Message):
    """
    A cart entry was added, updated or removed, or the cart was emptied by
    checkout. Modals post it on the app so the cart screen hears it.
    """

    bubble = True


class NewOrderMessage(Message):
    bubble = True

    def __init__(self, ono: int) -> None:
        super().__init__()
        self.ono = ono


class ModeSwitchedMessage(Message):
    """Posted on the app whenever the active storefront section changes."""

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
