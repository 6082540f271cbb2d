import pytest
from fastapi.testclient import TestClient

from webapp.main import app


REPEAT = "when flagClicked\n    repeat 3\n        move 10\n"


@pytest.fixture
def client():
	return TestClient(app)


def test_health(client):
	response = client.get("/health")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


def test_index_page(client):
	response = client.get("/")
	assert response.status_code == 200
	assert response.headers["content-type"].startswith("text/html")


@pytest.mark.parametrize("field", ["code", "source"])
def test_compile_single_source(client, field):
	response = client.post("/api/compile", json={field: REPEAT})
	assert response.status_code == 200
	body = response.json()
	assert body["success"] is True
	assert body["diagnostics"] == []
	assert "self.move(10);" in body["js"]
	assert 'id="flag"' in body["html"]
	assert "debug" not in body


def test_compile_sprites_reports_prefixed_diagnostics(client):
	payload = {
		"sprites": [
			{"name": "Cat", "code": "when flagClicked\n    mvoe 10\n", "costumes": ["cat-a"]},
			{"name": "Stage", "code": "var score = 0\n", "isStage": True},
		]
	}
	body = client.post("/api/compile", json=payload).json()
	assert body["success"] is False
	diagnostic = body["diagnostics"][0]
	assert diagnostic["code"] == "E108"
	assert diagnostic["stage"] == "parser"
	assert diagnostic["sprite"] == "Cat"
	assert diagnostic["severity"] == "error"
	assert diagnostic["message"] == "[Cat] Unknown block 'mvoe'"
	assert (diagnostic["line"], diagnostic["column"]) == (2, 5)
	assert 'rt.defineSprite("Cat", {"costumes": ["cat-a"]' in body["js"]


def test_compile_debug_payload(client):
	body = client.post("/api/compile", json={"code": REPEAT, "debug": True}).json()
	sprite = body["debug"]["sprites"][0]
	assert sprite["name"] == "Sprite1"
	assert sprite["ast"]["_type"] == "Program"
	assert sprite["ast"]["scripts"][0]["trigger"]["name"] == "whenFlagClicked"


@pytest.mark.parametrize("payload", [{}, {"debug": True}, {"sprites": [{"name": "", "code": ""}]}])
def test_compile_rejects_invalid_requests(client, payload):
	assert client.post("/api/compile", json=payload).status_code == 422


def test_preview_returns_html(client):
	response = client.post("/api/preview", json={"code": REPEAT})
	assert response.status_code == 200
	assert response.headers["content-type"].startswith("text/html")
	assert "function buildProgram(host)" in response.text


def test_tokens(client):
	body = client.post("/api/tokens", json={"code": "move 10\n"}).json()
	assert [t["kind"] for t in body["tokens"]] == ["KEYWORD", "NUMBER", "NEWLINE"]
	assert body["tokens"][1] == {"kind": "NUMBER", "text": "10", "line": 1, "column": 6}
	assert body["diagnostics"] == []


def test_tokens_report_lexer_errors(client):
	body = client.post("/api/tokens", json={"code": "say 'abc"}).json()
	assert body["tokens"] == []
	assert body["diagnostics"][0]["code"] == "E005"
	assert body["diagnostics"][0]["stage"] == "lexer"
	assert body["diagnostics"][0]["sprite"] is None
