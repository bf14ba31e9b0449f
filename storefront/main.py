"""
FastAPI Application Entry Point

Storefront Order Service - one in-memory ordering session per process:
menu browsing, cart, three-step checkout and live order tracking.

Endpoints:
    - GET  /api/menu: The restaurant menu
    - GET  /api/cart: Cart contents, badge and price breakdown
    - POST /api/cart/items: Add a (customized) dish
    - PATCH/DELETE /api/cart/items/{id}: Change quantity / remove
    - GET/PATCH /api/checkout: Checkout wizard state / edit form fields
    - POST /api/checkout/next | back | submit | reset: Wizard actions
    - POST/GET/DELETE /api/orders/{id}/tracking: Start / poll / stop tracking
    - POST /api/orders/{id}/cancel: Cancel a tracked order
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

import uvicorn

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from storefront.catalog import dishes_by_category, get_dish
from storefront.core.clock import AsyncioScheduler, Scheduler
from storefront.core.config import Settings, get_settings, setup_logging
from storefront.models import TrackerStatus
from storefront.schemas import (
    AddCartItemRequest,
    CancelOrderRequest,
    CheckoutFieldsUpdate,
    ErrorResponse,
    HealthResponse,
    UpdateQuantityRequest,
)
from storefront.services.cart import CartStore, badge_label
from storefront.services.checkout import CheckoutWizard, StepResult
from storefront.services.orders import BaseOrderSource, get_order_source
from storefront.services.submission import BaseOrderSubmissionService, get_submission_service
from storefront.services.submission.base import CancellationResult
from storefront.services.tracking import OrderTracker

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# SESSION
# =============================================================================

class StorefrontSession:
    """
    Everything one shopper interacts with: the shared cart, the checkout
    wizard and the trackers of the orders being followed.
    """

    def __init__(
        self,
        settings: Settings,
        submission_service: BaseOrderSubmissionService,
        order_source: BaseOrderSource,
        scheduler: Scheduler,
    ):
        self.settings = settings
        self.submission_service = submission_service
        self.order_source = order_source
        self.scheduler = scheduler
        self.cart = CartStore()
        self.wizard = self._new_wizard()
        self.trackers: dict[str, OrderTracker] = {}

    def _new_wizard(self) -> CheckoutWizard:
        return CheckoutWizard.from_settings(self.cart, self.submission_service, self.settings)

    def reset_checkout(self) -> None:
        self.wizard = self._new_wizard()

    def new_tracker(self) -> OrderTracker:
        return OrderTracker(
            self.order_source,
            self.scheduler,
            interval=self.settings.tracking_interval_seconds,
        )

    def add_tracker(self, order_id: str) -> OrderTracker:
        """Register a fresh tracker for an order, dropping the oldest finished ones."""
        self._evict_finished_trackers()
        tracker = self.new_tracker()
        self.trackers[order_id] = tracker
        return tracker

    def _evict_finished_trackers(self) -> None:
        finished = [order_id for order_id, t in self.trackers.items() if t.is_terminal]
        excess = len(finished) - self.settings.max_finished_trackers
        if excess <= 0:
            return
        for order_id in finished[:excess]:
            self.trackers.pop(order_id).close()
        logger.debug(f"Dropped {excess} finished tracker(s)")

    async def cancel_order(self, order_id: str, reason: Optional[str] = None) -> CancellationResult:
        """
        Refund an order that is still on its way and stop its tracker.

        The tracker is held on its current stage while the refund is in
        flight, so an order never ends up both delivered and refunded.
        """
        tracker = self.trackers[order_id]
        if not tracker.pause():
            return CancellationResult(
                success=False,
                order_id=order_id,
                status="failed",
                error_message=f"Order {order_id} cannot be cancelled while {tracker.status.value}",
            )

        try:
            refund = await self.submission_service.cancel_order(order_id, reason)
        except Exception:
            tracker.resume()
            raise

        if not refund.success:
            tracker.resume()
        elif not tracker.cancel(reason):
            logger.warning(f"Order {order_id} refunded but tracker is {tracker.status.value}")
        return refund

    def close(self) -> None:
        for tracker in self.trackers.values():
            tracker.close()
        self.trackers.clear()


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Restaurant: {settings.restaurant_name}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    submission_service = get_submission_service()
    order_source = get_order_source()
    logger.info(f"✅ Submission Service: {submission_service.provider_name}")
    logger.info(f"✅ Order Source: {order_source.provider_name}")

    app.state.session = StorefrontSession(
        settings=settings,
        submission_service=submission_service,
        order_source=order_source,
        scheduler=AsyncioScheduler(),
    )

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    app.state.session.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant storefront: menu, cart with dish customization, "
        "three-step checkout and live order tracking."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session(request: Request) -> StorefrontSession:
    return request.app.state.session


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def cart_view(session: StorefrontSession) -> dict[str, Any]:
    """Cart contents with badge state and the priced order summary."""
    cart = session.cart
    return {
        "items": [item.to_dict() for item in cart.snapshot()],
        "item_count": cart.item_count,
        "badge": badge_label(cart.item_count),
        "animate_trigger": cart.animate_trigger,
        "summary": session.wizard.order_summary().to_dict(),
    }


def step_view(result: StepResult, wizard: CheckoutWizard) -> dict[str, Any]:
    return {
        "success": result.success,
        "step": result.step.value,
        "scroll_to_top": result.scroll_to_top,
        "checkout": wizard.to_dict(),
    }


def get_tracker(session: StorefrontSession, order_id: str) -> OrderTracker:
    tracker = session.trackers.get(order_id)
    if tracker is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} is not being tracked")
    return tracker


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    session: StorefrontSession = Depends(get_session),
) -> HealthResponse:
    """Verify all system components are operational."""

    submission_status = "healthy"
    try:
        if not await session.submission_service.health_check():
            submission_status = "unhealthy"
    except Exception as e:
        submission_status = f"unhealthy: {str(e)}"
        logger.error(f"Submission service health check failed: {e}")

    order_status = "healthy"
    try:
        if not await session.order_source.health_check():
            order_status = "unhealthy"
    except Exception as e:
        order_status = f"unhealthy: {str(e)}"
        logger.error(f"Order source health check failed: {e}")

    overall = "operational" if all(
        s == "healthy" for s in [submission_status, order_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        submission_service=submission_status,
        order_source=order_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU & CART ENDPOINTS
# =============================================================================

@app.get("/api/menu", tags=["Menu"])
async def get_menu() -> dict[str, Any]:
    """The restaurant menu grouped by category."""
    return {
        "restaurant": settings.restaurant_name,
        "currency": settings.currency,
        "categories": {
            category: [dish.to_dict() for dish in dishes]
            for category, dishes in dishes_by_category().items()
        },
    }


@app.get("/api/cart", tags=["Cart"])
async def get_cart(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    return cart_view(session)


@app.post(
    "/api/cart/items",
    status_code=201,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    tags=["Cart"],
    summary="Add Dish to Cart",
)
async def add_cart_item(
    payload: AddCartItemRequest,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Add a dish to the cart.

    Customized dishes must carry a choice for every required group. An
    identical dish with identical choices is merged into the existing line.
    """
    dish = get_dish(payload.dish_id)
    if dish is None:
        raise HTTPException(status_code=404, detail=f"Dish {payload.dish_id} not found")

    result = session.cart.add_item(dish, payload.quantity, payload.selections)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error.to_dict())

    return {
        "success": True,
        "merged": result.merged,
        "line_item": result.line_item.to_dict(),
        "cart": cart_view(session),
    }


@app.patch(
    "/api/cart/items/{line_item_id}",
    responses={404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def update_cart_item(
    line_item_id: str,
    payload: UpdateQuantityRequest,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """Change a line item's quantity (values below 1 become 1)."""
    item = session.cart.set_quantity(line_item_id, payload.quantity)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Line item {line_item_id} not found")
    return {"success": True, "line_item": item.to_dict(), "cart": cart_view(session)}


@app.delete(
    "/api/cart/items/{line_item_id}",
    responses={404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def remove_cart_item(
    line_item_id: str,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    if not session.cart.remove_item(line_item_id):
        raise HTTPException(status_code=404, detail=f"Line item {line_item_id} not found")
    return {"success": True, "cart": cart_view(session)}


# =============================================================================
# CHECKOUT ENDPOINTS
# =============================================================================

@app.get("/api/checkout", tags=["Checkout"])
async def get_checkout(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    return session.wizard.to_dict()


@app.patch(
    "/api/checkout",
    responses={409: {"model": ErrorResponse}},
    tags=["Checkout"],
    summary="Edit Checkout Fields",
)
async def update_checkout(
    payload: CheckoutFieldsUpdate,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """Set the fields sent in the body; fields left out keep their value."""
    if not session.wizard.update(**payload.model_dump(exclude_unset=True)):
        raise HTTPException(
            status_code=409,
            detail=f"Checkout cannot be edited while {session.wizard.state.value}",
        )
    return session.wizard.to_dict()


@app.post(
    "/api/checkout/next",
    responses={422: {"model": ErrorResponse}},
    tags=["Checkout"],
)
async def checkout_next(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    """Validate the current step and move to the next one."""
    wizard = session.wizard
    result = wizard.next()
    if not result.success:
        raise HTTPException(
            status_code=422,
            detail={
                "message": result.message or "This step cannot be completed.",
                "step": result.step.value,
                "errors": [error.to_dict() for error in result.errors],
            },
        )
    return step_view(result, wizard)


@app.post("/api/checkout/back", tags=["Checkout"])
async def checkout_back(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    wizard = session.wizard
    result = wizard.back()
    if not result.success:
        raise HTTPException(
            status_code=409,
            detail=f"Checkout cannot navigate while {wizard.state.value}",
        )
    return step_view(result, wizard)


@app.post(
    "/api/checkout/submit",
    responses={409: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    tags=["Checkout"],
    summary="Place Order",
)
async def checkout_submit(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    """
    Place the order.

    Returns 409 while submitting is not possible (invalid form, wrong step,
    empty cart) and 502 when the order service rejected the order. After a
    502 the same request can be retried.
    """
    outcome = await session.wizard.submit()

    if not outcome.accepted:
        raise HTTPException(
            status_code=409,
            detail={
                "message": outcome.blockers[0].message,
                "blockers": [blocker.to_dict() for blocker in outcome.blockers],
            },
        )

    if not outcome.success:
        raise HTTPException(
            status_code=502,
            detail={"message": outcome.error_message, "state": outcome.state.value},
        )

    logger.info(f"Order {outcome.order_id} placed via API")
    return {
        "success": True,
        "order_id": outcome.order_id,
        "summary": outcome.breakdown.to_dict(),
        "tracking_url": f"/api/orders/{outcome.order_id}/tracking",
    }


@app.post("/api/checkout/reset", tags=["Checkout"])
async def checkout_reset(session: StorefrontSession = Depends(get_session)) -> dict[str, Any]:
    """Start a fresh checkout (the cart is left as it is)."""
    session.reset_checkout()
    return session.wizard.to_dict()


# =============================================================================
# ORDER TRACKING ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders/{order_id}/tracking",
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Tracking"],
    summary="Start Tracking",
)
async def start_tracking(
    order_id: str,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Look up an order and start advancing it through its stages.

    Calling it again for an order already tracked returns the current
    progress; after a failed lookup it retries.
    """
    tracker = session.trackers.get(order_id)

    if tracker is None:
        tracker = session.add_tracker(order_id)
        status = await tracker.start(order_id)
    elif tracker.status == TrackerStatus.FAILED:
        status = await tracker.retry()
    else:
        status = tracker.status

    if status == TrackerStatus.NOT_FOUND:
        tracker.close()
        session.trackers.pop(order_id, None)
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    if status == TrackerStatus.FAILED:
        raise HTTPException(
            status_code=503,
            detail=tracker.error_message or "Failed to load order details.",
        )

    return tracker.snapshot()


@app.get(
    "/api/orders/{order_id}/tracking",
    responses={404: {"model": ErrorResponse}},
    tags=["Tracking"],
)
async def get_tracking(
    order_id: str,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    return get_tracker(session, order_id).snapshot()


@app.delete(
    "/api/orders/{order_id}/tracking",
    responses={404: {"model": ErrorResponse}},
    tags=["Tracking"],
)
async def stop_tracking(
    order_id: str,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """Stop tracking an order and release its timer."""
    tracker = get_tracker(session, order_id)
    tracker.close()
    session.trackers.pop(order_id, None)
    return {"success": True, "order_id": order_id}


@app.post(
    "/api/orders/{order_id}/cancel",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Tracking"],
    summary="Cancel Order",
)
async def cancel_order(
    order_id: str,
    payload: CancelOrderRequest,
    session: StorefrontSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Cancel an order that is still on its way and refund it.

    Only orders placed through this service and not yet delivered can be
    cancelled.
    """
    tracker = get_tracker(session, order_id)
    refund = await session.cancel_order(order_id, payload.reason)
    if not refund.success:
        raise HTTPException(status_code=409, detail=refund.error_message)

    return {
        "success": True,
        "refund": refund.to_dict(),
        "tracking": tracker.snapshot(),
    }


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# SERVER ENTRY POINT
# =============================================================================

def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    logger.info(f"Serving on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
