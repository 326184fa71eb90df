import logging

from sqlalchemy import update
from sqlmodel import Session

from bookstore_pay.exceptions import OutOfStock
from bookstore_pay.models.book import Book

logger = logging.getLogger(__name__)


def reduce_inventory(session: Session, book: Book, quantity: int = 1):
    """Decrement stock in one conditional statement; never goes below zero."""
    result = session.exec(
        update(Book)
        .where(Book.id == book.id, Book.stock >= quantity)
        .values(stock=Book.stock - quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        logger.warning(f"Insufficient stock for book {book.id} ({book.title}), requested {quantity}")
        raise OutOfStock(f"Insufficient stock for {book.title}")

    logger.info(f"Reduced stock for book {book.id} by {quantity}")
