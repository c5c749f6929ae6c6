"""Core application for the posyandu backend.

This package contains models, serializers, views and route registrations
for the patient register, measurement visits, immunizations and the public
schedule pages, plus the response cache and rate limiter in ``gateway``.
"""
