"""Shared helpers for amounts, dates, logging and output sanitizing."""
