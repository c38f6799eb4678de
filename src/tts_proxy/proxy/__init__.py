"""
Proxy Building Blocks.

    - cache.py: Thread-safe response cache (optional LRU cap and TTL)
    - singleflight.py: Per-key sharing of in-flight upstream fetches
    - upstream.py: Google Translate TTS client
    - response.py: Internal response type and transport encoders
"""
