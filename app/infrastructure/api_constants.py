"""
API endpoint constants and configuration.

This module contains all remote service endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# Remote persistence service endpoints
class RemoteEndpoints:
    """Remote service endpoint paths."""

    API_BASE = "/api"

    # Authentication
    LOGIN = f"{API_BASE}/auth/login"

    # Field data
    FARM_PLOTS = f"{API_BASE}/farm-plots"
    FARMERS = f"{API_BASE}/farmers"
    INSPECTIONS = f"{API_BASE}/inspections"

    @classmethod
    def for_collection(cls, collection: str) -> str:
        """
        Get the push endpoint for an offline collection.

        Args:
            collection: Offline collection name

        Returns:
            Endpoint path

        Raises:
            ValueError: If the collection has no remote counterpart
        """
        endpoints = {
            "farmers": cls.FARMERS,
            "map_plots": cls.FARM_PLOTS,
            "inspections": cls.INSPECTIONS,
        }
        try:
            return endpoints[collection]
        except KeyError:
            raise ValueError(f"No remote endpoint for collection '{collection}'") from None


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Offline session user id, used when no server-issued id is available
    OFFLINE_USER_ID = 999
