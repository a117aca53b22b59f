"""
POS session: composition root for the sync core.

Wires settings, local storage, the remote store, the connectivity monitor and
the core services, and exposes the operations a POS front end calls.
"""

from dataclasses import dataclass, field

from possync.application.use_cases.complete_sale import (
    CompleteSaleResult,
    CompleteSaleUseCase,
)
from possync.config import (
    Settings,
    bind_session_context,
    clear_session_context,
    get_logger,
    get_settings,
)
from possync.core.entities import Cart, CartItem, EntityType, PaymentMethod
from possync.core.exceptions import NotFoundError, RemoteError
from possync.core.interfaces import IRemoteStore
from possync.core.services import (
    ConnectivityMonitor,
    DrainReport,
    EntityStore,
    MutationQueue,
    Reconciler,
)
from possync.infrastructure.connectivity import ProbeConnectivityMonitor
from possync.infrastructure.remote import HttpRemoteStore
from possync.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteEntityRepository,
    SQLiteMutationRepository,
    initialize_database,
)

logger = get_logger(__name__)


@dataclass
class PosSession:
    """A running POS client: local state, pending work and the current cart."""

    settings: Settings
    pool: ConnectionPool
    remote: IRemoteStore
    monitor: ConnectivityMonitor
    queue: MutationQueue
    reconciler: Reconciler
    entity_store: EntityStore
    cart: Cart = field(default_factory=Cart)

    def __post_init__(self) -> None:
        self._complete_sale = CompleteSaleUseCase(
            self.entity_store,
            tax_rate=self.settings.pos.tax_rate,
            cashier_id=self.settings.pos.cashier_id,
            cashier_name=self.settings.pos.cashier_name,
        )
        self._unsubscribe = self.monitor.subscribe(self._on_connectivity_change)

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    @property
    def pending_count(self) -> int:
        return len(self.queue)

    async def start(self) -> None:
        """
        Migrate and load local state, then begin watching connectivity.

        Local data is always available after this returns. When online,
        persisted mutations are replayed and collections refreshed from the
        remote store.
        """
        bind_session_context(
            cashier_id=self.settings.pos.cashier_id,
            cashier_name=self.settings.pos.cashier_name,
        )
        await initialize_database(self.pool.db_path)
        await self.entity_store.load()
        await self.queue.load()

        if isinstance(self.monitor, ProbeConnectivityMonitor):
            await self.monitor.probe()
            self.monitor.start()

        logger.info(
            "pos_session_started",
            online=self.monitor.is_online,
            pending=len(self.queue),
        )
        if self.monitor.is_online:
            await self.sync()

    async def sync(self) -> DrainReport:
        """Replay pending mutations, then refresh if nothing is left pending."""
        report = await self.reconciler.drain()
        if not self.queue:
            await self.refresh()
        return report

    async def refresh(self) -> bool:
        """
        Replace local collections with the remote snapshot.

        Skipped while mutations are pending. Returns False and keeps local data
        when the remote store is unavailable.
        """
        if self.queue:
            logger.info("refresh_skipped_pending", pending=len(self.queue))
            return False

        try:
            products = await self.remote.list_products()
            customers = await self.remote.list_customers()
            sales = await self.remote.list_sales()
        except RemoteError as e:
            logger.warning("refresh_failed_using_local", error=e.message)
            return False

        await self.entity_store.replace_all(EntityType.PRODUCT, products)
        await self.entity_store.replace_all(EntityType.CUSTOMER, customers)
        await self.entity_store.replace_all(EntityType.SALE, sales)
        return True

    async def _on_connectivity_change(self, online: bool) -> None:
        # The reconciler subscribed first, so its drain has already run.
        if online and not self.queue:
            await self.refresh()

    def scan_barcode(self, barcode: str, quantity: int = 1) -> CartItem:
        """Add the product with this barcode to the cart."""
        product = self.entity_store.find_product_by_barcode(barcode)
        if product is None:
            raise NotFoundError("product", barcode)
        return self.cart.add(product, quantity)

    async def complete_sale(
        self,
        payment_method: PaymentMethod,
        payment_amount: float,
        discount: float = 0.0,
    ) -> CompleteSaleResult:
        return await self._complete_sale.execute(
            self.cart, payment_method, payment_amount, discount
        )

    async def retry(self) -> DrainReport:
        return await self.reconciler.retry()

    async def close(self) -> None:
        """Stop probing and release the HTTP client and database connections."""
        self._unsubscribe()
        self.reconciler.close()
        await self.monitor.close()
        await self.remote.close()
        await self.pool.close()
        logger.info("pos_session_closed", pending=len(self.queue))
        clear_session_context()


def create_session(
    settings: Settings | None = None,
    remote: IRemoteStore | None = None,
    monitor: ConnectivityMonitor | None = None,
    pool: ConnectionPool | None = None,
) -> PosSession:
    """
    Build a session from settings, with optional overrides for each dependency.

    Call ``start()`` on the result before use.
    """
    settings = settings or get_settings()

    pool = pool or ConnectionPool.from_settings(settings.storage)
    remote = remote or HttpRemoteStore(
        base_url=settings.remote.base_url,
        timeout=settings.remote.timeout,
    )
    if monitor is None:
        monitor = ProbeConnectivityMonitor(
            remote,
            interval=settings.connectivity.probe_interval,
            initial=settings.connectivity.assume_online,
            debounce_seconds=settings.connectivity.debounce_seconds,
        )

    queue = MutationQueue(SQLiteMutationRepository(pool))
    reconciler = Reconciler(queue, remote, monitor)
    entity_store = EntityStore(SQLiteEntityRepository(pool), reconciler)

    return PosSession(
        settings=settings,
        pool=pool,
        remote=remote,
        monitor=monitor,
        queue=queue,
        reconciler=reconciler,
        entity_store=entity_store,
    )
