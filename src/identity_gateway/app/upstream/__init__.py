"""Upstream identity broker client."""

from .broker_client import BrokerClient

__all__ = ['BrokerClient']
