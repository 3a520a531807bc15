import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from strategy_engine import Position, StrategyEngineClient, StrategyEngineError
from sync_config import StrategyEngineConfig


class FakeEngineAPI:
    def __init__(self):
        self.requests = []
        self.rebalance_status = 200

    def app(self):
        app = web.Application()
        app.router.add_get("/v1/security/{query:.+}/", self.security)
        app.router.add_post("/v1/portfolio/{portfolio_id}/rebalance", self.rebalance)
        return app

    async def security(self, request):
        self.requests.append(request)
        query = request.match_info["query"]
        if query == "BRK/B":
            return web.json_response({"compositeFigi": "BBG000DWG505", "ticker": "BRK/B"})
        if query == "BBG000B9XRY4":
            return web.json_response({"compositeFigi": "BBG000B9XRY4", "ticker": "AAPL"})
        return web.Response(status=404, text="security not found")

    async def rebalance(self, request):
        self.requests.append(request)
        request["body"] = await request.json()
        if self.rebalance_status != 200:
            return web.Response(status=self.rebalance_status, text="portfolio not found")
        if request["body"]["AllocationOnly"]:
            return web.json_response({
                "Allocation": {"Date": "2026-10-16", "Members": {"BBG000BPH459": 1.0}},
                "NextTradeDate": "2026-11-02T00:00:00Z",
                "Transactions": None,
            })
        return web.json_response({
            "Allocation": {"Date": "2026-10-16", "Members": {"BBG000BPH459": 1.0}},
            "NextTradeDate": "2026-11-02T00:00:00Z",
            "Transactions": [
                {"CompositeFIGI": "BBG000B9XRY4", "Ticker": "AAPL", "Kind": "SELL",
                 "Shares": 10, "PricePerShare": 150.25, "TotalValue": 1502.5},
                {"CompositeFIGI": "BBG000BPH459", "Ticker": "MSFT", "Kind": "buy",
                 "Shares": 100.4, "PricePerShare": 10.0, "TotalValue": 1004.0},
            ],
        })


@pytest_asyncio.fixture
async def engine_api():
    fake = FakeEngineAPI()
    server = test_utils.TestServer(fake.app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def engine(engine_api):
    config = StrategyEngineConfig(base_url=engine_api.base_url, api_key="pv-key")
    async with StrategyEngineClient(config) as client:
        yield client


class TestStrategyEngineClient:

    @pytest.mark.asyncio
    async def test_resolve_security_sends_api_key(self, engine, engine_api):
        identity = await engine.resolve_security("BRK/B")
        assert identity.security_identifier == "BBG000DWG505"
        assert identity.ticker == "BRK/B"
        assert engine_api.requests[0].headers["X-Pv-Api"] == "pv-key"

    @pytest.mark.asyncio
    async def test_resolve_security_by_identifier(self, engine):
        identity = await engine.resolve_security("BBG000B9XRY4")
        assert identity.ticker == "AAPL"

    @pytest.mark.asyncio
    async def test_unknown_security_raises_with_context(self, engine):
        with pytest.raises(StrategyEngineError) as exc_info:
            await engine.resolve_security("ZZZZ")
        assert exc_info.value.status == 404
        assert exc_info.value.security == "ZZZZ"

    @pytest.mark.asyncio
    async def test_allocation_only_request(self, engine, engine_api):
        plan = await engine.rebalance("pf-123", True, [], {})

        assert engine_api.requests[0]["body"] == {
            "AllocationOnly": True,
            "Positions": [],
            "Precision": 0,
            "PriceData": {},
        }
        assert plan.allocation.members == {"BBG000BPH459": 1.0}
        assert plan.transactions == []

    @pytest.mark.asyncio
    async def test_rebalance_request_and_response(self, engine, engine_api):
        positions = [
            Position(security_identifier="BBG000B9XRY4", broker_symbol="AAPL", ticker="AAPL", share_quantity=10),
            Position.cash(1000.0),
        ]
        plan = await engine.rebalance("pf-123", False, positions, {"BBG000B9XRY4": 150.25})

        body = engine_api.requests[0]["body"]
        assert body["AllocationOnly"] is False
        assert body["Positions"] == [
            {"CompositeFIGI": "BBG000B9XRY4", "Ticker": "AAPL", "Shares": 10.0},
            {"CompositeFIGI": "$CASH", "Ticker": "$CASH", "Shares": 1000.0},
        ]
        assert body["PriceData"] == {"BBG000B9XRY4": 150.25}
        assert plan.next_trade_date == "2026-11-02T00:00:00Z"
        assert [(t.kind, t.ticker, t.shares) for t in plan.transactions] == [
            ("SELL", "AAPL", 10.0),
            ("BUY", "MSFT", 100.4),
        ]

    @pytest.mark.asyncio
    async def test_http_error_carries_portfolio(self, engine, engine_api):
        engine_api.rebalance_status = 404
        with pytest.raises(StrategyEngineError) as exc_info:
            await engine.rebalance("pf-missing", False, [], {})
        assert exc_info.value.portfolio_id == "pf-missing"
        assert "portfolio not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_closed_session_is_an_error(self):
        client = StrategyEngineClient(StrategyEngineConfig())
        with pytest.raises(StrategyEngineError, match="not open"):
            await client.resolve_security("AAPL")
