"""
Authentication application.

Holds the email-based User model that buyers, sellers and staff share.
Sign-in itself is handled by the identity provider; the API accepts its
JWTs through djangorestframework-simplejwt.
"""
