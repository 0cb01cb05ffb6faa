"""
Core business logic for the media gallery.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns. Storage and transcoding come in through
small protocols, so the logic can be tested with in-memory fakes.
"""
