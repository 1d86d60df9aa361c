"""
Listings app.

Holds the horse listings and the offers buyers make on them. The payments
app reads both and flips listing status when a sale settles or is refunded.
"""
