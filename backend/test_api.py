"""HTTP surface tests with FastAPI's TestClient and dependency overrides."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from erp_agent.api.deps import get_ai, get_db
from erp_agent.main import app
from erp_agent.services import order_service
from erp_ai.intent_schema import ProductLine


@pytest.fixture
def client(engine, make_ai):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    offline, _ = make_ai(available=False)

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_ai] = lambda: offline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_parse_create_order(client):
    response = client.post("/nli/parse", json={"input": "为张三创建订单，苹果10个单价5元"})
    assert response.status_code == 200
    body = response.json()
    assert "销售订单创建成功" in body["reply"]
    assert body["needConfirm"] is False
    assert body["confirmToken"] is None


def test_delete_round_trip_with_token(client, db):
    order = order_service.create_order(db, "SALE", "张三", [ProductLine(name="苹果", quantity=1, unit_price=1)])

    first = client.post("/ai/parse", json={"input": f"删除订单{order.id}"}).json()
    assert first["needConfirm"] is True
    assert first["confirmToken"]

    second = client.post(
        "/nli/parse",
        json={"input": "是", "confirmed": True, "confirmToken": first["confirmToken"]},
    ).json()
    assert "订单删除成功" in second["reply"]
    assert second["needConfirm"] is False


def test_empty_input_is_rejected(client):
    assert client.post("/nli/parse", json={"input": ""}).status_code == 422


def test_ai_probes_when_offline(client):
    assert client.get("/ai/health").json() == {"healthy": False, "status": "DOWN"}
    status = client.get("/ai/status").json()
    assert status["status"] == "INACTIVE"
    assert status["configured"] is False

    insight = client.post("/ai/insights", json={"input": "最近经营怎么样", "analysisType": "SALES"}).json()
    assert insight["reply"].startswith("😅")
