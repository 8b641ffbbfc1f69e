import json

from helpdesk_reply.handlers import main


def test_main_routes_health(monkeypatch):
    monkeypatch.setattr(main.health_check, "lambda_handler", lambda e, c: {"status": "ok"})
    event = {"requestContext": {"http": {"method": "GET", "path": "/health"}}}
    resp = main.lambda_handler(event, None)
    assert resp["status"] == "ok"


def test_main_routes_reply_post(monkeypatch):
    marker = {}

    def fake_handler(event, context):
        marker["called"] = True
        return {"statusCode": 200}

    monkeypatch.setattr(main.reply_ticket, "lambda_handler", fake_handler)
    event = {"requestContext": {"http": {"method": "POST", "path": "/reply_ticket/"}}}
    resp = main.lambda_handler(event, None)
    assert resp["statusCode"] == 200
    assert marker["called"] is True


def test_main_routes_reply_get_to_same_handler(monkeypatch):
    monkeypatch.setattr(main.reply_ticket, "lambda_handler", lambda e, c: {"statusCode": 302})
    event = {"requestContext": {"http": {"method": "GET", "path": "/reply_ticket"}}}
    assert main.lambda_handler(event, None)["statusCode"] == 302


def test_main_unknown_route():
    event = {"requestContext": {"http": {"method": "DELETE", "path": "/reply_ticket"}}}
    resp = main.lambda_handler(event, None)
    assert resp["statusCode"] == 404
    body = json.loads(resp["body"])
    assert body["message"] == "Route not found"
    assert body["route"] == "DELETE /reply_ticket"
