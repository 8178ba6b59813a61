from abc import ABC, abstractmethod
from importlib import import_module

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager(ABC):
    """
    Instantiates the client of one type for the engine named in "<TYPE>_ENGINE".

    Engines are resolved by convention: engine "qdrant" of type "rag" lives in
    shared.clients.rag.qdrant.RAGClientQdrant. Adding an engine means adding
    that module, nothing here.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the client type as used in module paths. E.g. "rag"
        """
        pass

    @abstractmethod
    def _get_class_prefix(self) -> str:
        """
        Returns the class name prefix of the engine clients. E.g. "RAGClient"
        """
        pass

    def _get_default_engine(self) -> str | None:
        """
        Returns the engine used when "<TYPE>_ENGINE" is unset, None makes it mandatory.
        """
        return None

    def get_engine_name(self) -> str:
        """
        Returns the configured engine, capitalised as in the class name. E.g. "Qdrant"

        Raises:
            ValueError: If no engine is configured and there is no default.
        """
        engine = self.helper_config.get_string_val(f"{self._get_client_type().upper()}_ENGINE", default=self._get_default_engine())
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Raises:
            ValueError: If the engine has no client implementation, or its settings are invalid.
        """
        engine = self.get_engine_name()
        class_name = f"{self._get_class_prefix()}{engine}"
        try:
            module = import_module(f"shared.clients.{self._get_client_type()}.{engine.lower()}.{class_name}")
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self._get_client_type()} engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self._get_client_type(), engine)
        return client

    def get_client(self) -> ClientInterface:
        return self.client
