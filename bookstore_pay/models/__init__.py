from bookstore_pay.models.user import User
from bookstore_pay.models.book import Book
from bookstore_pay.models.order import Order
from bookstore_pay.models.order_item import OrderItem
from bookstore_pay.models.ledger import LedgerTransaction
from bookstore_pay.models.recharge import Recharge
from bookstore_pay.models.processed_event import ProcessedEvent

# add ALL models here
