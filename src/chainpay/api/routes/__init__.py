"""Subscription API routes under ``/api/subscription``."""

from fastapi import APIRouter

from chainpay.api.routes.subscriptions import router as subscriptions_router

subscription_router = APIRouter(prefix="/api/subscription")
subscription_router.include_router(subscriptions_router)

__all__ = ["subscription_router"]
