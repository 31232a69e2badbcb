import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import stripe
from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import (
    AdminIdentity,
    Identity,
    TokenService,
    Unauthorized,
    get_store,
    get_token_service,
    require_admin,
    require_authenticated,
)
from config import Settings, load_settings
from database import BistroStore, by_id, connect
from payments import DEFAULT_CURRENCY, PaymentGateway, to_minor_units
from schemas import ADMIN_ROLE, CartItem, MenuItem, PaymentIntentRequest, User

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to the bistro boos is awesome!"


def get_payments(request: Request) -> PaymentGateway:
    return request.app.state.payments


def create_app(
    settings: Optional[Settings] = None,
    mongo_client: Optional[MongoClient] = None,
    payments: Optional[PaymentGateway] = None,
) -> FastAPI:
    """
    Build the API.

    Anything not passed in is created from the environment when the
    application starts. A mongo_client supplied by the caller is not closed
    on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = settings or load_settings()
        logging.getLogger().setLevel(config.log_level)

        client = mongo_client
        owns_client = client is None
        if owns_client:
            client = connect(config.database_url)

        app.state.settings = config
        app.state.store = BistroStore.from_client(client, config.database_name)
        app.state.tokens = TokenService(config.token_secret)
        app.state.payments = payments or PaymentGateway(config.payment_secret_key)

        if owns_client:
            app.state.store.ping()
            logger.info("Pinged your deployment. You successfully connected to MongoDB!")
        logger.info(f"Bistro API ready (database '{config.database_name}')")

        yield

        logger.info("Bistro API shutting down...")
        if owns_client:
            client.close()

    app = FastAPI(title="Bistro Ordering API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===================== Errors =====================
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": True, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content={"error": True, "message": message},
        )

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return _internal_error()

    @app.exception_handler(stripe.StripeError)
    async def payment_error_handler(request: Request, exc: stripe.StripeError):
        logger.error(f"Payment provider error on {request.method} {request.url.path}: {exc}")
        return _internal_error()

    # ===================== Public Endpoints =====================
    @app.get("/", response_class=PlainTextResponse)
    def root():
        return WELCOME_TEXT

    @app.get("/health")
    def health(store: BistroStore = Depends(get_store)):
        try:
            store.ping()
        except PyMongoError as e:
            logger.error(f"Database health check failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database connection failed",
            )
        return {"status": "ok", "database": "connected"}

    # ===================== Auth =====================
    @app.post("/jwt")
    def issue_token(
        payload: Dict[str, Any] = Body(...),
        tokens: TokenService = Depends(get_token_service),
    ):
        return {"token": tokens.issue(payload)}

    # ===================== Users =====================
    @app.get("/users")
    def list_users(
        admin: AdminIdentity = Depends(require_admin),
        store: BistroStore = Depends(get_store),
    ):
        return store.users.find_all()

    @app.post("/users")
    def create_user(user: User, store: BistroStore = Depends(get_store)):
        if store.users.find_one({"email": user.email}):
            return {"message": "User already exists in the database"}
        return store.users.insert_one(user)

    @app.get("/users/admin/{email}")
    def check_admin(
        email: str,
        identity: Identity = Depends(require_authenticated),
        store: BistroStore = Depends(get_store),
    ):
        if identity.email != email:
            return {"admin": False}
        user = store.users.find_one({"email": email})
        return {"admin": bool(user) and user.get("role") == ADMIN_ROLE}

    # TODO: promoting and deleting users is not access-controlled; decide whether these need require_admin.
    @app.patch("/users/admin/{user_id}")
    def make_admin(user_id: str, store: BistroStore = Depends(get_store)):
        return store.users.update_one(by_id(user_id), {"role": ADMIN_ROLE})

    @app.delete("/users/{user_id}")
    def delete_user(user_id: str, store: BistroStore = Depends(get_store)):
        return store.users.delete_one(by_id(user_id))

    # ===================== Menu =====================
    @app.get("/menu")
    def list_menu(store: BistroStore = Depends(get_store)):
        return store.menu.find_all()

    @app.post("/menu")
    def create_menu_item(
        item: MenuItem,
        admin: AdminIdentity = Depends(require_admin),
        store: BistroStore = Depends(get_store),
    ):
        return store.menu.insert_one(item)

    @app.delete("/menu/{item_id}")
    def delete_menu_item(
        item_id: str,
        admin: AdminIdentity = Depends(require_admin),
        store: BistroStore = Depends(get_store),
    ):
        return store.menu.delete_one(by_id(item_id))

    # ===================== Reviews =====================
    @app.get("/reviews")
    def list_reviews(store: BistroStore = Depends(get_store)):
        return store.reviews.find_all()

    # ===================== Carts =====================
    @app.get("/carts")
    def list_cart(
        email: Optional[str] = None,
        identity: Identity = Depends(require_authenticated),
        store: BistroStore = Depends(get_store),
    ):
        if not email:
            return []
        if email != identity.email:
            raise Unauthorized()
        return store.carts.find({"email": email})

    @app.post("/carts")
    def add_to_cart(item: CartItem, store: BistroStore = Depends(get_store)):
        return store.carts.insert_one(item)

    @app.delete("/carts/{item_id}")
    def remove_from_cart(item_id: str, store: BistroStore = Depends(get_store)):
        return store.carts.delete_one(by_id(item_id))

    # ===================== Payments =====================
    @app.post("/create-payment-intent")
    def create_payment_intent(
        payload: PaymentIntentRequest,
        identity: Identity = Depends(require_authenticated),
        payments: PaymentGateway = Depends(get_payments),
    ):
        amount = to_minor_units(payload.price)
        client_secret = payments.create_payment_intent(amount, DEFAULT_CURRENCY)
        return {"clientSecret": client_secret}

    return app


def _internal_error() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": True, "message": "Internal server error"},
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = load_settings()
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)
