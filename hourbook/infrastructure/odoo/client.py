"""
Odoo XML-RPC client (external accounting bridge)

Authentication goes through ``/xmlrpc/2/common`` (``authenticate``), model
calls through ``/xmlrpc/2/object`` (``execute_kw``).

Usage:
    client = OdooClient(OdooConfig(url, username, database, api_key))
    result = client.test_connection()
    partner_id = client.find_partner("Acme")
"""
import logging
import xmlrpc.client
from dataclasses import dataclass
from typing import Any, Callable

from hourbook.errors import ExternalServiceError

logger = logging.getLogger(__name__)

# Failures raised by the transport or by the remote side
TRANSPORT_ERRORS = (xmlrpc.client.Fault, xmlrpc.client.ProtocolError, OSError)


@dataclass(frozen=True)
class OdooConfig:
    url: str
    username: str
    database: str
    api_key: str
    timeout: int | None = None


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str
    uid: int | None = None


class _TimeoutTransport(xmlrpc.client.Transport):
    def __init__(self, timeout: int, **kwargs):
        super().__init__(**kwargs)
        self._timeout = timeout

    def make_connection(self, host):
        conn = super().make_connection(host)
        conn.timeout = self._timeout
        return conn


class _SafeTimeoutTransport(xmlrpc.client.SafeTransport):
    def __init__(self, timeout: int, **kwargs):
        super().__init__(**kwargs)
        self._timeout = timeout

    def make_connection(self, host):
        conn = super().make_connection(host)
        conn.timeout = self._timeout
        return conn


def _server_proxy(uri: str, timeout: int | None = None) -> xmlrpc.client.ServerProxy:
    transport = None
    if timeout:
        if uri.startswith("https://"):
            transport = _SafeTimeoutTransport(timeout)
        else:
            transport = _TimeoutTransport(timeout)
    return xmlrpc.client.ServerProxy(uri, transport=transport, allow_none=True)


class OdooClient:
    """
    Thin synchronous wrapper around Odoo's external API.

    The uid obtained by the first successful authentication is reused for
    the lifetime of the client.
    """

    def __init__(
        self,
        config: OdooConfig,
        proxy_factory: Callable[..., Any] = _server_proxy,
    ):
        self.config = config
        self._proxy_factory = proxy_factory
        self._uid: int | None = None

    def _endpoint(self, path: str) -> str:
        return f"{self.config.url.rstrip('/')}{path}"

    def _proxy(self, path: str):
        return self._proxy_factory(self._endpoint(path), timeout=self.config.timeout)

    def authenticate(self) -> int:
        """
        Raises:
            ExternalServiceError: transport failure or rejected credentials
        """
        if self._uid:
            return self._uid

        common = self._proxy("/xmlrpc/2/common")
        try:
            uid = common.authenticate(
                self.config.database, self.config.username, self.config.api_key, {}
            )
        except TRANSPORT_ERRORS as e:
            logger.warning("Odoo authentication error at %s: %s", self.config.url, e)
            raise ExternalServiceError(f"Authentication failed: {e}") from e

        if not uid:
            logger.warning("Odoo authentication returned no uid for %s", self.config.username)
            raise ExternalServiceError("Authentication failed: Invalid credentials")

        logger.info("Odoo authentication successful, uid=%s", uid)
        self._uid = uid
        return uid

    def execute(self, model: str, method: str, args: list, kwargs: dict | None = None):
        uid = self.authenticate()
        obj = self._proxy("/xmlrpc/2/object")
        params = [self.config.database, uid, self.config.api_key, model, method, args]
        if kwargs:
            params.append(kwargs)
        try:
            return obj.execute_kw(*params)
        except TRANSPORT_ERRORS as e:
            raise ExternalServiceError(f"Odoo API error: {e}") from e

    def test_connection(self) -> ConnectionTestResult:
        try:
            uid = self.authenticate()
        except ExternalServiceError as e:
            return ConnectionTestResult(success=False, message=str(e))
        return ConnectionTestResult(success=True, message="Connection successful", uid=uid)

    def _search_first(self, model: str, domain: list) -> int | None:
        try:
            result = self.execute(model, "search", [domain])
        except ExternalServiceError:
            logger.exception("Odoo search on %s failed", model)
            return None
        return result[0] if result else None

    def find_partner(self, name: str) -> int | None:
        """Customer id whose name contains ``name`` (case-insensitive)"""
        return self._search_first("res.partner", [["name", "ilike", name]])

    def find_company(self, name: str) -> int | None:
        return self._search_first("res.company", [["name", "=", name]])

    def create_invoice(self, values: dict) -> int:
        """Create an ``account.move`` and return its id"""
        try:
            result = self.execute("account.move", "create", [[values]])
        except ExternalServiceError as e:
            raise ExternalServiceError(f"Failed to create invoice: {e}") from e
        # batch create answers with a list of ids on recent Odoo versions
        if isinstance(result, list):
            return result[0]
        return result

    def get_invoice(self, invoice_id: int) -> dict | None:
        try:
            result = self.execute("account.move", "read", [[invoice_id]])
        except ExternalServiceError as e:
            raise ExternalServiceError(f"Failed to get invoice: {e}") from e
        return result[0] if result else None
