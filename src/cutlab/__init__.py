"""
cutlab - audio breakpoint editor backed by object storage and a remote processing API.

A small toolkit for:
- Placing breakpoints on audio tracks and deriving the resulting chunks
- Uploading originals plus breakpoint metadata to Supabase Storage
- Triggering the external video processing API
- Reviewing produced chunks and replacing them with custom clips
"""

__version__ = "0.1.0"
