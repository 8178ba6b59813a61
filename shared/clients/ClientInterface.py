from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """
    Base for the HTTP backends of the pipeline (vector index, embedding model).

    Every engine declares its settings through _get_required_config(). They are
    read once on construction from "<TYPE>_<ENGINE>_<KEY>" environment variables,
    so a misconfigured engine fails before any request is sent.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._settings: dict[str, Any] = self._load_settings()
        self._client: httpx.AsyncClient | None = None

    ##########################################
    ############### IDENTITY #################
    ##########################################

    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "rag"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """
        Returns the engine of the client in lowercase. E.g. "qdrant"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### SETTINGS #################
    ##########################################

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns the settings the engine reads from the environment.

        Returns:
            list[EnvConfig]: One entry per setting, default None marks it as mandatory.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The environment variable of a setting. E.g. "RAG_QDRANT_API_KEY"
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def _get_reader(self, val_type: str) -> Callable[..., Any]:
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' in {self.get_client_type()} client '{self.get_engine_name()}'.")
        return readers[val_type]

    def _load_settings(self) -> dict[str, Any]:
        """
        Reads every declared setting.

        Raises:
            ValueError: If a mandatory setting is missing or a value has the wrong type.
        """
        settings: dict[str, Any] = {}
        for config in self._get_required_config():
            reader = self._get_reader(config.val_type)
            settings[config.env_key.upper()] = reader(self._get_config_key_name(config.env_key), default=config.default)
        return settings

    def get_setting(self, raw_key: str) -> Any:
        """
        Returns a setting loaded on construction. E.g. get_setting("BASE_URL")
        """
        key = raw_key.upper()
        if key not in self._settings:
            raise ValueError(f"Setting '{key}' is not declared by {self.get_client_type()} client '{self.get_engine_name()}'.")
        return self._settings[key]

    ##########################################
    ############### TRANSPORT ################
    ##########################################

    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the backend, empty if no API key is set.
        """
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the backend. E.g. "http://localhost:6333"
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path answering health checks. E.g. "/healthz"
        """
        pass

    def _build_request_error(self, message: str, status_code: int | None = None) -> Exception:
        """
        Builds the exception raised when a request fails. Subclasses return
        the error kind of their domain (e.g. VectorStoreError for rag clients).

        Args:
            message (str): Human readable description of the failure.
            status_code (int | None): HTTP status, None for transport failures.
        """
        return Exception(message)

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.strip()
        if endpoint:
            endpoint = "/" + endpoint.lstrip("/")
        return f"{self._get_base_url().rstrip('/')}{endpoint}"

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Open the pooled HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        """Close the pooled HTTP client, if open."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Send a request to the health endpoint, raising if the backend does not answer with a success."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a request to the backend.

        Args:
            method: HTTP method.
            content: Raw body. Takes precedence over json.
            json: JSON-serialisable body.
            params: URL query parameters.
            endpoint: Path appended to the base URL.
            additional_headers: Headers merged over the auth header.
            raise_on_error: Raise on a status >= 300 instead of returning the response.

        Returns:
            The raw httpx.Response.

        Raises:
            Exception: The type from _build_request_error(), if the client is not
                booted, the transport fails (timeouts included) or, with
                raise_on_error, the status is not a success.
        """
        if self._client is None:
            raise self._build_request_error("HTTP client not initialised. Call boot() before making requests.")

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {"content": content} if content is not None else {"json": json} if json is not None else {}

        try:
            response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)
        except httpx.HTTPError as exc:
            self.logging.error("%s %s failed: %s", method, url, exc)
            raise self._build_request_error(f"{method} {url} failed: {exc}") from exc

        if raise_on_error:
            self._raise_for_status(method, url, response)
        return response

    def _raise_for_status(self, method: str, url: str, response: httpx.Response) -> None:
        if response.status_code < 300:
            return
        self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:500])
        raise self._build_request_error(
            f"{method} {url} answered with status {response.status_code}",
            status_code=response.status_code,
        )
