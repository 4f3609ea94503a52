"""Shared HTTP routers."""
