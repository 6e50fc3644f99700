"""
LifeTea Mood - emotion classification and mood aggregation for LifeTea stories.

This package labels story text with an emotion and turns labelled posts into a
community mood ring, per-author mood trends, and a current vibe. A small
FastAPI service and CLI expose these views over HTTP and Server-Sent Events.
"""

__version__ = "0.1.0"
