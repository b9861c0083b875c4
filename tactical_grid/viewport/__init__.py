"""Viewport Bounded Context.

What the player is looking at and searching for:
- Value Objects: Viewport, VisibleRegion
- Services: ViewportController (pan/zoom/selection), LocationIndex (search)
"""
