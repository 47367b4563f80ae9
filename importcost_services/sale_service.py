"""
importcost_services.sale_service -- Transfers, sale confirmation and deletion.

Responsibility:
    Record bank transfers; turn a distribution preview into a confirmed
    sale that consumes its transfers and posts EXIT movements; undo a sale.

Architecture position:
    Services -- stateful orchestration over the ORM and InventoryService.

Invariants enforced:
    - Exclusive consumption: a transfer is linked to at most one sale.  The
      link is made by a guarded UPDATE (``sale_id IS NULL``); if fewer rows
      than requested are updated, another sale got there first and the
      whole confirmation fails.
    - A confirmed sale's lines are exactly the preview's lines.
    - Per product, one EXIT movement for the sum of its line quantities,
      stamped with the clock's current time.
    - Deleting a sale restores stock with ADJUSTMENT_IN movements and
      frees its transfers.

Failure modes:
    - TransferNotFoundError when a transfer id does not exist.
    - TransferAlreadyLinkedError (ConcurrencyError) when a transfer is
      already linked; the caller's transaction_scope rolls back the sale
      row, lines and links written so far.
    - InsufficientStockError when the cached quantity cannot cover an EXIT.
    - SaleNotFoundError from delete_sale / sale_totals.
    - TransferInUseError when deleting a transfer a sale has consumed.

Usage:
    with transaction_scope(factory) as session:
        sale_id = SaleService(session, clock=clock).confirm_sale(
            preview, transfer_ids, notes="March"
        )
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from importcost_engines.distribution import DistributionPreview
from importcost_engines.sale_totals import SaleTotals, sale_totals
from importcost_kernel.domain.clock import Clock, SystemClock
from importcost_kernel.domain.records import Channel, MovementKind, SaleLine, TransferRecord
from importcost_kernel.domain.values import ZERO, to_decimal
from importcost_kernel.exceptions import (
    SaleNotFoundError,
    TransferAlreadyLinkedError,
    TransferInUseError,
    TransferNotFoundError,
)
from importcost_kernel.logging_config import LogContext, get_logger
from importcost_kernel.models import ProductModel, SaleLineModel, SaleModel, TransferModel
from importcost_services.inventory_service import InventoryService

logger = get_logger("services.sale")


def _units_by_product(lines: Iterable[tuple[UUID, int]]) -> dict[UUID, int]:
    units: dict[UUID, int] = defaultdict(int)
    for product_id, quantity in lines:
        units[product_id] += quantity
    return dict(units)


class SaleService:
    """
    Contract:
        Receives the Session and a Clock by constructor injection.
    Non-goals:
        - Does not re-run stock validation; callers validate the preview
          with DistributionService.validate_stock before confirming.
        - Does not commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        local_currency: str = "CUP",
        hard_currency_code: str = "USD",
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._local_currency = local_currency
        self._inventory = InventoryService(session, self._clock, hard_currency_code)

    # -- transfers ---------------------------------------------------------

    def record_transfer(self, transfer_date: date, amount: Decimal, reference: str = "") -> UUID:
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError(f"Transfer amount must be positive, got {amount}")
        transfer = TransferModel(transfer_date=transfer_date, amount=amount, reference=reference)
        self._session.add(transfer)
        self._session.flush()
        logger.info(
            "transfer_recorded",
            extra={"transfer_id": str(transfer.id), "amount": str(amount)},
        )
        return transfer.id

    def delete_transfer(self, transfer_id: UUID) -> None:
        """Delete a transfer that no sale has consumed."""
        transfer = self._session.get(TransferModel, transfer_id)
        if transfer is None:
            raise TransferNotFoundError([str(transfer_id)])
        if transfer.sale_id is not None:
            raise TransferInUseError(str(transfer_id), str(transfer.sale_id))
        self._session.delete(transfer)
        self._session.flush()
        logger.info("transfer_deleted", extra={"transfer_id": str(transfer_id)})

    def unlinked_transfers(
        self,
        start: date | None = None,
        end: date | None = None,
    ) -> list[TransferRecord]:
        """Transfers not yet consumed by a sale, oldest first."""
        query = select(TransferModel).where(TransferModel.sale_id.is_(None))
        if start is not None:
            query = query.where(TransferModel.transfer_date >= start)
        if end is not None:
            query = query.where(TransferModel.transfer_date <= end)
        rows = self._session.scalars(
            query.order_by(TransferModel.transfer_date, TransferModel.id)
        ).all()
        return [
            TransferRecord(
                transfer_date=t.transfer_date,
                amount=t.amount,
                transfer_id=t.id,
                reference=t.reference,
            )
            for t in rows
        ]

    # -- confirmation ------------------------------------------------------

    def confirm_sale(
        self,
        preview: DistributionPreview,
        transfer_ids: Sequence[UUID],
        notes: str | None = None,
    ) -> UUID:
        """
        Persist a preview as a sale and consume its transfers.

        Returns:
            The new sale id.
        """
        ids = list(dict.fromkeys(transfer_ids))
        transfers = self._session.scalars(
            select(TransferModel).where(TransferModel.id.in_(ids))
        ).all()
        missing = sorted(set(ids) - {t.id for t in transfers}, key=str)
        if missing:
            raise TransferNotFoundError([str(tid) for tid in missing])

        sale = SaleModel(
            period_start=preview.period_start,
            period_end=preview.period_end,
            total_transfers=sum((t.amount for t in transfers), ZERO),
            total_units=preview.line_units,
            total_amount=sum((line.subtotal for line in preview.lines), ZERO),
            allocation_mode=preview.mode.value,
            notes=notes,
        )
        self._session.add(sale)
        self._session.flush()

        with LogContext.bind(sale_id=sale.id):
            self._link_transfers(sale.id, ids)

            for line in preview.lines:
                self._session.add(
                    SaleLineModel(
                        sale_id=sale.id,
                        line_date=line.line_date,
                        product_id=line.product_id,
                        lot_id=line.lot_id,
                        channel=line.channel.value,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        subtotal=line.subtotal,
                    )
                )
            self._session.flush()

            now = self._clock.now()
            units = _units_by_product((line.product_id, line.quantity) for line in preview.lines)
            for product_id, quantity in units.items():
                self._inventory.record_movement(
                    product_id,
                    MovementKind.EXIT,
                    quantity,
                    occurred_at=now,
                    reason="sale",
                    reference=str(sale.id),
                )

            logger.info(
                "sale_confirmed",
                extra={
                    "transfer_count": len(ids),
                    "line_count": len(preview.lines),
                    "total_units": sale.total_units,
                    "total_amount": str(sale.total_amount),
                },
            )
        return sale.id

    def _link_transfers(self, sale_id: UUID, transfer_ids: list[UUID]) -> None:
        if not transfer_ids:
            return
        result = self._session.execute(
            update(TransferModel)
            .where(TransferModel.id.in_(transfer_ids))
            .where(TransferModel.sale_id.is_(None))
            .values(sale_id=sale_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(transfer_ids):
            taken = self._session.scalars(
                select(TransferModel.id)
                .where(TransferModel.id.in_(transfer_ids))
                .where(TransferModel.sale_id != sale_id)
            ).all()
            logger.warning(
                "transfer_link_conflict",
                extra={"requested": len(transfer_ids), "linked": result.rowcount},
            )
            raise TransferAlreadyLinkedError(sorted(str(tid) for tid in taken))
        # The bulk UPDATE bypassed the identity map
        for transfer in self._session.scalars(
            select(TransferModel).where(TransferModel.id.in_(transfer_ids))
        ):
            self._session.refresh(transfer)

    # -- deletion and reads ------------------------------------------------

    def _get_sale(self, sale_id: UUID) -> SaleModel:
        sale = self._session.get(SaleModel, sale_id)
        if sale is None:
            raise SaleNotFoundError(str(sale_id))
        return sale

    def delete_sale(self, sale_id: UUID) -> None:
        """Restore stock, free the transfers, drop the sale and its lines."""
        sale = self._get_sale(sale_id)
        with LogContext.bind(sale_id=sale_id):
            units = _units_by_product((line.product_id, line.quantity) for line in sale.lines)
            now = self._clock.now()
            for product_id, quantity in units.items():
                self._inventory.record_movement(
                    product_id,
                    MovementKind.ADJUSTMENT_IN,
                    quantity,
                    occurred_at=now,
                    reason="sale deleted",
                    reference=str(sale_id),
                )

            for transfer in self._session.scalars(
                select(TransferModel).where(TransferModel.sale_id == sale_id)
            ):
                transfer.sale_id = None

            self._session.delete(sale)
            self._session.flush()
            logger.info("sale_deleted", extra={"restored_products": len(units)})

    def sale_lines(self, sale_id: UUID) -> list[SaleLine]:
        sale = self._get_sale(sale_id)
        names = dict(
            self._session.execute(
                select(ProductModel.id, ProductModel.name).where(
                    ProductModel.id.in_(list({line.product_id for line in sale.lines}))
                )
            ).all()
        )
        return [
            SaleLine(
                line_date=line.line_date,
                product_id=line.product_id,
                lot_id=line.lot_id,
                product_name=names.get(line.product_id, ""),
                channel=Channel(line.channel),
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in sale.lines
        ]

    def sale_totals(self, sale_id: UUID) -> SaleTotals:
        return sale_totals(self.sale_lines(sale_id), self._local_currency)
