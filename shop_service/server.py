"""Shop Service Server."""

from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import TokenVerifier, get_identity, require_admin
from .config import Settings
from .errors import ProductNotFoundError, ShopError
from .logger import logger
from .mongo_store import MongoCatalogStore, MongoOrderStore, connect
from .payments import StripePaymentGateway
from .producer import OrderEventProducer
from .schemas import Identity, PaymentIntentRequest, PlaceOrderRequest, ProductCreate, StockUpdate
from .store import CatalogStore, InMemoryCatalogStore, InMemoryOrderStore, OrderStore
from .workflow import OrderWorkflow

health_router = APIRouter()
order_router = APIRouter(prefix="/api/v1/order")
product_router = APIRouter(prefix="/api/v1/product")


def get_workflow(request: Request) -> OrderWorkflow:
    """Return the workflow built for this application.

    Args:
        request: The incoming request.

    Returns:
        OrderWorkflow: The workflow shared by every request.
    """
    return request.app.state.workflow


def get_catalog(request: Request) -> CatalogStore:
    """Return the catalog store behind the workflow."""
    return request.app.state.workflow.catalog


# -- health ---------------------------------------------------------------


@health_router.get("/health")
def health_check():
    """Liveness check."""
    return {"status": "healthy"}


@health_router.get("/health/ready")
def readiness_check(workflow: OrderWorkflow = Depends(get_workflow)):
    """Check if the service is ready to accept traffic.

    Returns:
        dict: Readiness plus store and Kafka status; kafka is null when event publishing is off.
    """
    store_ok = workflow.catalog.ping() and workflow.orders.ping()
    kafka_ok = workflow.producer.check_connection() if workflow.producer else None
    ready = store_ok and kafka_ok is not False
    return {"status": "ready" if ready else "not_ready", "store": store_ok, "kafka": kafka_ok}


# -- orders ---------------------------------------------------------------


@order_router.post("/payment")
def process_payment(
    body: PaymentIntentRequest,
    identity: Identity = Depends(get_identity),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """Create a payment intent and hand its client secret to the storefront."""
    intent = workflow.create_payment_intent(identity.user_id, body.total_amount)
    return {"success": True, "client_secret": intent.client_secret, "paymentIntentId": intent.id}


@order_router.post("/new", status_code=201)
def create_order(
    body: PlaceOrderRequest,
    identity: Identity = Depends(get_identity),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """Place an order for the caller.

    Returns:
        dict: Success message and the created order.
    """
    order = workflow.place_order(identity.user_id, body)
    return {
        "success": True,
        "message": "Order Placed Successfully",
        "order": order.model_dump(by_alias=True, mode="json"),
    }


@order_router.get("/admin")
def get_admin_orders(
    _admin: Identity = Depends(require_admin),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """List every order. Admin only.

    Returns:
        dict: All orders, unfiltered.
    """
    orders = workflow.list_orders()
    return {"success": True, "orders": [o.model_dump(by_alias=True, mode="json") for o in orders]}


@order_router.get("/my")
def get_my_orders(
    identity: Identity = Depends(get_identity),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """List the orders placed by the caller.

    Returns:
        dict: The caller's orders only.
    """
    orders = workflow.list_user_orders(identity.user_id)
    return {"success": True, "orders": [o.model_dump(by_alias=True, mode="json") for o in orders]}


@order_router.get("/single/{order_id}")
def get_order_details(
    order_id: str,
    identity: Identity = Depends(get_identity),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """Fetch one order visible to the caller.

    Args:
        order_id: Identity of the order.

    Returns:
        dict: The order.

    Raises:
        OrderNotFoundError: If the order does not exist or belongs to another user.
    """
    order = workflow.get_order(order_id, identity)
    return {"success": True, "order": order.model_dump(by_alias=True, mode="json")}


@order_router.put("/single/{order_id}")
def process_order(
    order_id: str,
    _admin: Identity = Depends(require_admin),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    """Advance the order one status step."""
    workflow.advance_status(order_id)
    return {"success": True, "message": "Order Processed Successfully"}


# -- products -------------------------------------------------------------


@product_router.get("/all")
def get_all_products(catalog: CatalogStore = Depends(get_catalog)):
    """List every catalog product."""
    products = catalog.list_products()
    return {"success": True, "products": [p.model_dump(by_alias=True, mode="json") for p in products]}


@product_router.get("/single/{product_id}")
def get_product_details(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    """Fetch one product.

    Raises:
        ProductNotFoundError: If no product has this id.
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return {"success": True, "product": product.model_dump(by_alias=True, mode="json")}


@product_router.post("/new", status_code=201)
def create_product(
    body: ProductCreate,
    _admin: Identity = Depends(require_admin),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Add a product to the catalog. Admin only.

    Args:
        body: Name, price and initial stock of the product.

    Returns:
        dict: The created product.
    """
    product = catalog.create_product(body)
    logger.info(f"Product {product.id} created with stock {product.stock}")
    return {
        "success": True,
        "message": "Product Created Successfully",
        "product": product.model_dump(by_alias=True, mode="json"),
    }


@product_router.put("/single/{product_id}/stock")
def update_stock(
    product_id: str,
    body: StockUpdate,
    _admin: Identity = Depends(require_admin),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Overwrite the stock count of a product. Admin only.

    Raises:
        ProductNotFoundError: If no product has this id.
    """
    product = catalog.set_stock(product_id, body.stock)
    if product is None:
        raise ProductNotFoundError(product_id)
    return {"success": True, "product": product.model_dump(by_alias=True, mode="json")}


# -- error handling -------------------------------------------------------


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    """Map ShopError subclasses to their HTTP responses."""
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first invalid field as a 400 response."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"success": False, "message": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log any other exception with its traceback and answer 500 with its message."""
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": str(exc) or "Internal Server Error"},
    )


# -- app factory ----------------------------------------------------------


def build_workflow(settings: Settings) -> OrderWorkflow:
    """Construct the stores, gateway and producer once for the process."""
    catalog: CatalogStore
    orders: OrderStore
    if settings.store_backend == "memory":
        catalog, orders = InMemoryCatalogStore(), InMemoryOrderStore()
    else:
        db = connect(settings.mongo_uri, settings.mongo_db)
        mongo_orders = MongoOrderStore(db)
        mongo_orders.ensure_indexes()
        catalog, orders = MongoCatalogStore(db), mongo_orders

    producer = None
    if settings.kafka_bootstrap_servers:
        producer = OrderEventProducer(settings.kafka_bootstrap_servers)
    return OrderWorkflow(
        catalog=catalog,
        orders=orders,
        gateway=StripePaymentGateway(settings.stripe_api_secret),
        producer=producer,
    )


def create_app(
    workflow: OrderWorkflow,
    verifier: TokenVerifier,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI application around already constructed collaborators.

    Args:
        workflow: The order workflow shared by every request.
        verifier: Identity token verifier.
        settings: Optional settings, used for CORS origins.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if workflow.producer:
            logger.info("Flushing pending order events...")
            workflow.producer.flush()

    app = FastAPI(title="Shop Service", lifespan=lifespan)
    app.state.workflow = workflow
    app.state.verifier = verifier

    if settings.frontend_uris:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.frontend_uris,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(order_router)
    app.include_router(product_router)
    logger.info("API routers mounted.")
    return app


def build_app(settings: Settings | None = None) -> FastAPI:
    """Build the application from the environment."""
    settings = settings or Settings.from_env()
    return create_app(
        build_workflow(settings),
        TokenVerifier(settings.jwt_secret, settings.jwt_algorithm),
        settings,
    )
