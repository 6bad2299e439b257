"""Subscription routing: resolve a batch's subscription id to handler bindings."""

from backend_hookrelay.routing.router import HandlerBinding, SubscriptionRouter

__all__ = ["HandlerBinding", "SubscriptionRouter"]
