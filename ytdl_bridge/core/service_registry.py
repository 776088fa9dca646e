"""
Service Registration — single place to import and register all services.
"""

from ytdl_bridge.core.container import container, Services


def register_all_services():
    """Import and register every service in the DI container."""
    from ytdl_bridge.services.ytdl import YtdlService

    container.register(Services.YTDL, YtdlService)
