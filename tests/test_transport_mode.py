from investotrack.config.settings import Settings
from investotrack.main import build_quote_client, load_initial_portfolio, resolve_http_transport, resolve_transport_mode
from investotrack.tools.registry import build_tool_services


def test_resolve_transport_mode_auto_local(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    assert resolve_transport_mode("auto") == "stdio"


def test_resolve_transport_mode_auto_hosted(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.setenv("PORT", "10000")
    assert resolve_transport_mode("auto") == "http"


def test_resolve_transport_mode_explicit(monkeypatch) -> None:
    monkeypatch.delenv("RENDER", raising=False)
    assert resolve_transport_mode("stdio") == "stdio"
    assert resolve_transport_mode("http") == "http"


def test_resolve_http_transport_default() -> None:
    assert resolve_http_transport("invalid") == "sse"
    assert resolve_http_transport("streamable") == "streamable"


def test_initial_portfolio_falls_back_to_sample(tmp_path) -> None:
    class _NoQuotes:
        def get_quote(self, symbol):
            return None

        def search(self, text):
            return []

    settings = Settings(portfolio_csv_path=str(tmp_path / "missing.csv"), default_rounding_policy="up")
    services = build_tool_services(settings, _NoQuotes())

    load_initial_portfolio(services, settings)

    assert len(services.portfolio.holdings()) == 6
    assert services.resolver.required_currency == "EUR"
    assert services.portfolio.rounding_policy.value == "down"


def test_quote_client_never_outlives_resolver_timeout() -> None:
    client = build_quote_client(Settings(request_timeout_seconds=15.0, quote_timeout_seconds=8.0))
    assert client.timeout_seconds == 8.0
    assert client.max_retries == 1

    client = build_quote_client(Settings(request_timeout_seconds=4.0, quote_timeout_seconds=8.0))
    assert client.timeout_seconds == 4.0
