"""
Utility Modules for tts-proxy.

    - timeit.py: Timing context manager
    - ports.py: Free-port discovery and the front end's port file
"""
