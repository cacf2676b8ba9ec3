"""Billing provider adapter."""
