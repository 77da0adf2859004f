"""
Test fixtures package for the anchoring engine tests.

This package provides factory functions for creating test objects:
- common.py: donation rows, seeded stores, controllers and a manual clock

Usage:
    from fixtures.common import make_donation, make_controller

    def test_something():
        controller = make_controller(make_store(make_donations(4)))
"""

from .common import (
    BASE_TIME,
    ManualClock,
    make_controller,
    make_donation,
    make_donations,
    make_store,
    make_three_donations,
)

__all__ = [
    "BASE_TIME",
    "ManualClock",
    "make_controller",
    "make_donation",
    "make_donations",
    "make_store",
    "make_three_donations",
]
