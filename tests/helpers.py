"""
tests/helpers.py -- Request body builders shared by the route tests.
"""

from __future__ import annotations


def make_registration(username: str, **extra) -> dict:
    body = {
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
        "confirmPassword": "secret123",
    }
    body.update(extra)
    return body


def make_car(**overrides) -> dict:
    body = {
        "title": "2019 Toyota Corolla",
        "description": "One owner, full service history",
        "brand": "Toyota",
        "model": "Corolla",
        "year": 2019,
        "price": 15000,
        "mileage": 42000,
        "transmission": "automatic",
        "fuelType": "petrol",
    }
    body.update(overrides)
    return body
