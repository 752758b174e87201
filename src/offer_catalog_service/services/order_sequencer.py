"""Order sequencer for keeping offer positions dense.

Every offer in a category carries an ``order`` in ``1..N`` with no gaps and no
duplicates. The sequencer is the only component that changes ``order`` and it
does so exclusively through the store's single-offer writes and bulk
``increment_order_where`` shifts; there is no application-level lock.

Known windows, accepted rather than locked away:

- Two concurrent appends can both read the same count and receive the same
  order.
- A reorder is a bulk shift followed by the moved offer's own write. A reader
  between the two sees a transient duplicate.
- Delete and compaction are separate writes. If compaction fails the category
  keeps a gap at the deleted position until ``find_gaps`` reports it and an
  operator repairs it.
"""

import logging

from offer_catalog_service.exceptions import (
    OfferNotFoundError,
    OrderOutOfRangeError,
    StoreUnavailableError,
)
from offer_catalog_service.models.offer_models import Offer
from offer_catalog_service.observability import traced
from offer_catalog_service.observability.metrics import (
    record_compaction_failure,
    record_order_shift,
    record_reorder,
)
from offer_catalog_service.repositories.offer_store import OfferFilter, OfferStore

logger = logging.getLogger(__name__)


class OrderSequencer:
    """Maintains the dense 1-based order sequence of one category."""

    def __init__(self, store: OfferStore) -> None:
        """Initialize the sequencer.

        Args:
            store: Category-scoped offer store
        """
        self.store = store
        self.category = store.category

    @traced("order.assign_on_create")
    def assign_on_create(self, requested_order: int | None = None) -> int:
        """Return the order for an offer about to be inserted.

        Without a requested order the offer is appended at ``N + 1``. A
        requested order must lie in ``[1, N + 1]``; offers at or after it are
        shifted up by one to make room.

        Args:
            requested_order: Explicit position, or None to append

        Returns:
            int: Order to insert the new offer with

        Raises:
            OrderOutOfRangeError: If the requested order is outside ``[1, N + 1]``
        """
        count = self.store.count_by_filter()

        if requested_order is None:
            return count + 1

        if not 1 <= requested_order <= count + 1:
            raise OrderOutOfRangeError(requested_order, count + 1)

        if requested_order <= count:
            shifted = self.store.increment_order_where(OfferFilter(min_order=requested_order), 1)
            record_order_shift(self.category.value, shifted)

        return requested_order

    @traced("order.compact_on_delete")
    def compact_on_delete(self, deleted_order: int) -> bool:
        """Close the gap left by a deleted offer.

        Runs even when the deleted offer was last; the shift then matches
        nothing.

        Args:
            deleted_order: Order the deleted offer held

        Returns:
            bool: True if the sequence was compacted, False if the shift failed
                and the category is left with a gap at ``deleted_order``
        """
        try:
            shifted = self.store.increment_order_where(OfferFilter(min_order=deleted_order + 1), -1)
        except StoreUnavailableError:
            logger.exception(
                f"Order compaction failed for {self.category.value} at position {deleted_order}, "
                "sequence left with a gap"
            )
            record_compaction_failure(self.category.value)
            return False

        record_order_shift(self.category.value, shifted)
        logger.info(f"Compacted {shifted} {self.category.value} offers after position {deleted_order}")
        return True

    @traced("order.reorder")
    def reorder(self, offer_id: str, new_order: int) -> Offer:
        """Move an offer to ``new_order`` and shift the offers in between.

        Moving later shifts ``old < order <= new`` down by one; moving earlier
        shifts ``new <= order < old`` up by one. The shift runs with the old
        bounds before the moved offer is written, and excludes the moved offer.

        Args:
            offer_id: Offer to move
            new_order: Target position in ``[1, N]``

        Returns:
            Offer: The moved offer with its new order

        Raises:
            NotFoundError: If the offer does not exist
            OrderOutOfRangeError: If ``new_order`` is outside ``[1, N]``
        """
        offer = self.store.find_by_id(offer_id)
        if offer is None:
            raise OfferNotFoundError(self.category.item_name)

        count = self.store.count_by_filter()
        if not 1 <= new_order <= count:
            raise OrderOutOfRangeError(new_order, count)

        old_order = offer.order
        if new_order == old_order:
            logger.debug(f"Reorder of {offer_id} to {new_order} is a no-op")
            return offer

        if new_order > old_order:
            shift_filter = OfferFilter(min_order=old_order + 1, max_order=new_order, exclude_id=offer_id)
            delta = -1
        else:
            shift_filter = OfferFilter(min_order=new_order, max_order=old_order - 1, exclude_id=offer_id)
            delta = 1

        shifted = self.store.increment_order_where(shift_filter, delta)
        record_order_shift(self.category.value, shifted)

        moved = self.store.set_order(offer_id, new_order)
        if moved is None:
            logger.error(
                f"{self.category.value} offer {offer_id} vanished during reorder after shifting "
                f"{shifted} offers, sequence needs repair"
            )
            raise OfferNotFoundError(self.category.item_name)

        record_reorder(self.category.value)
        logger.info(f"Moved {self.category.value} offer {offer_id} from {old_order} to {new_order}")
        return moved

    def find_gaps(self) -> list[int]:
        """List the positions missing from ``1..N``.

        A non-empty result means a compaction failed or a write raced; the
        sequencer does not repair it automatically.

        Returns:
            list: Missing positions in ascending order
        """
        offers = self.store.find_by_filter()
        orders = {offer.order for offer in offers}
        return [position for position in range(1, len(offers) + 1) if position not in orders]
