
# Import models here so Alembic can discover metadata.
from salesdesk.models.user import User  # noqa: F401
from salesdesk.models.product import Product  # noqa: F401

# Orders and the ledger
from salesdesk.models.sale import Sale  # noqa: F401
from salesdesk.models.transaction import Transaction  # noqa: F401

# Support
from salesdesk.models.notification import Notification  # noqa: F401
from salesdesk.models.ticket import Ticket, TicketReply  # noqa: F401
