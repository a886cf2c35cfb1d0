"""
In-memory debt store.

Holds the customer/debt graph for one ledger session. Customer records are
immutable; every mutation swaps in a new Customer object, so a reader holding
a record sees either the whole old state or the whole new one.

Writers serialize per customer through customer_lock(). The lock is
re-entrant so a service can hold it across a read-compute-swap sequence that
itself calls store mutators.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator
from uuid import UUID

from core.exceptions import TierLimitError
from core.models import Customer, Debt

logger = logging.getLogger(__name__)


class DebtStore:
    """Authoritative customer/debt collection, in insertion order."""

    def __init__(self):
        self._customers: dict[UUID, Customer] = {}
        self._locks: dict[UUID, threading.RLock] = {}
        self._registry_lock = threading.RLock()

    def _lock_for(self, customer_id: UUID) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(customer_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[customer_id] = lock
            return lock

    @contextmanager
    def customer_lock(self, customer_id: UUID) -> Iterator[None]:
        """Hold the mutex for one customer's debt list."""
        with self._lock_for(customer_id):
            yield

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_customer(self, customer_id: UUID) -> Customer | None:
        return self._customers.get(customer_id)

    def find_debt(self, customer: Customer, debt_id: UUID) -> Debt | None:
        return customer.find_debt(debt_id)

    def list_customers(self) -> list[Customer]:
        with self._registry_lock:
            return list(self._customers.values())

    def __len__(self) -> int:
        return len(self._customers)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def replace_debts(self, customer_id: UUID, debts: Iterable[Debt]) -> Customer:
        """
        Atomically swap a customer's debt list.

        Args:
            customer_id: Customer UUID
            debts: Complete new debt list, in display order

        Returns:
            The new Customer record

        Raises:
            ValueError: If customer not found or the list repeats a debt id
        """
        new_debts = tuple(debts)
        ids = [d.id for d in new_debts]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate debt ids for customer {customer_id}")

        with self.customer_lock(customer_id):
            current = self._customers.get(customer_id)
            if current is None:
                raise ValueError(f"Customer {customer_id} not found")

            updated = current.model_copy(update={"debts": new_debts})
            self._customers[customer_id] = updated

        return updated

    def add_customer(self, customer: Customer, max_customers: int | None = None) -> Customer:
        """
        Insert a new customer.

        Args:
            customer: Record to insert
            max_customers: Refuse the insert once the store holds this many

        Raises:
            ValueError: If a customer with the same id exists
            TierLimitError: If the store already holds max_customers
        """
        with self._registry_lock:
            if customer.id in self._customers:
                raise ValueError(f"Customer {customer.id} already exists")
            if max_customers is not None and len(self._customers) >= max_customers:
                raise TierLimitError(max_customers)
            self._customers[customer.id] = customer
        return customer

    def add_debt(self, customer_id: UUID, debt: Debt) -> Customer:
        """
        Append a debt to a customer.

        Raises:
            ValueError: If customer not found
        """
        with self.customer_lock(customer_id):
            current = self._customers.get(customer_id)
            if current is None:
                raise ValueError(f"Customer {customer_id} not found")
            return self.replace_debts(customer_id, current.debts + (debt,))

    def delete_customer(self, customer_id: UUID) -> Customer | None:
        """Remove a customer. Returns the removed record, or None if absent."""
        with self.customer_lock(customer_id):
            with self._registry_lock:
                removed = self._customers.pop(customer_id, None)
                self._locks.pop(customer_id, None)
        return removed

    def delete_debt(self, customer_id: UUID, debt_id: UUID) -> Debt | None:
        """Remove one debt. Returns the removed debt, or None if absent."""
        with self.customer_lock(customer_id):
            current = self._customers.get(customer_id)
            if current is None:
                return None

            removed = current.find_debt(debt_id)
            if removed is None:
                return None

            self.replace_debts(customer_id, (d for d in current.debts if d.id != debt_id))
        return removed

    def load(self, customers: Iterable[Customer]) -> None:
        """
        Replace the whole store, e.g. when hydrating from a snapshot.

        Raises:
            ValueError: If two customers share an id
        """
        loaded: dict[UUID, Customer] = {}
        for customer in customers:
            if customer.id in loaded:
                raise ValueError(f"Duplicate customer id {customer.id} in snapshot")
            loaded[customer.id] = customer

        self._swap_all(loaded)
        logger.info("Debt store loaded with %d customers", len(loaded))

    def clear(self) -> None:
        self._swap_all({})

    def _swap_all(self, customers: dict[UUID, Customer]) -> None:
        """
        Swap the whole customer map while holding every affected customer lock.

        Writers hold a customer lock before the registry lock, so the customer
        locks are taken first and in a fixed order. Lock objects of surviving
        customers are kept for writers already waiting on them.
        """
        with self._registry_lock:
            ids = sorted(set(self._customers) | set(customers), key=str)
        locks = [self._lock_for(customer_id) for customer_id in ids]

        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock)
            with self._registry_lock:
                self._customers = dict(customers)
                self._locks = {cid: lock for cid, lock in self._locks.items() if cid in customers}
