"""
Media Gallery - upload, transcode and browse images and videos in a bucket.

This package contains the complete application:
- core: Framework-agnostic gallery logic (cache, upload pipeline, queries)
- infrastructure: Object storage and ffmpeg integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
