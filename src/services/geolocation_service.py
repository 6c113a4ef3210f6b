"""
Geolocation Service
Resolves the requester's country name from the client IP through an IP2Location style lookup API.
"""
import httpx

# Utils
from utils.log_utils import LogUtil
from utils.environment_utils import EnvironmentUtils

# Exceptions
from exceptions.country_guard_exception import GeolocationException


class GeolocationService:
    """Service for inferring a country name from a client IP address."""
    def __init__(self, log_util: LogUtil, environment_utils: EnvironmentUtils):
        self.log_util = log_util
        self.api_url = environment_utils.get_env_variable("GEOLOCATION_API_URL")
        self.api_key = environment_utils.get_env_variable("GEOLOCATION_API_KEY")
        self.timeout = environment_utils.get_env_variable("GEOLOCATION_TIMEOUT")

    async def get_country_name(self, client_ip: str) -> str:
        """
        Look up the country name for client_ip.
        Raises GeolocationException when the lookup fails or returns no country.
        """
        if not client_ip:
            raise GeolocationException(message="Client IP address is required for geolocation")

        params = {"ip": client_ip, "format": "json"}
        if self.api_key:
            params["key"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.api_url, params=params)
        except httpx.HTTPError as e:
            self.log_util.error(
                service_name="GeolocationService",
                message=f"Geolocation request failed for {client_ip}: {str(e)}"
            )
            raise GeolocationException(message=f"Geolocation request failed: {str(e)}")

        if response.status_code != 200:
            self.log_util.error(
                service_name="GeolocationService",
                message=f"Geolocation lookup for {client_ip} returned status {response.status_code}"
            )
            raise GeolocationException(message=f"Geolocation lookup returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            self.log_util.error(
                service_name="GeolocationService",
                message=f"Geolocation lookup for {client_ip} returned an unreadable body: {str(e)}"
            )
            raise GeolocationException(message="Geolocation lookup returned an unreadable response")

        if not isinstance(payload, dict):
            self.log_util.error(
                service_name="GeolocationService",
                message=f"Geolocation lookup for {client_ip} returned unexpected payload type {type(payload).__name__}"
            )
            raise GeolocationException(message="Geolocation lookup returned an unreadable response")

        country_name = payload.get("country_name")
        if not country_name or country_name == "-":
            error = payload.get("error") or {}
            self.log_util.error(
                service_name="GeolocationService",
                message=f"No country for {client_ip}: {error.get('error_message', 'country_name missing')}"
            )
            raise GeolocationException(message=f"Could not determine country for {client_ip}")

        return country_name
