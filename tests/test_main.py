import unittest
from dataclasses import replace
from unittest import mock

from fastapi.testclient import TestClient
from slack_bolt import App

from mailbridge.config import load_settings
from mailbridge.main import create_app, run_socket_mode


class ServiceRoutesTests(unittest.TestCase):
    def test_unconfigured_service_reports_missing_settings(self):
        cfg = replace(
            load_settings(),
            openai_api_key=None,
            pipedream_project_id=None,
            slack_bot_token=None,
            slack_signing_secret=None,
        )
        client = TestClient(create_app(cfg))

        health = client.get("/health")
        self.assertEqual(health.status_code, 200)
        body = health.json()
        self.assertEqual(body["status"], "ok")
        self.assertFalse(body["slack_configured"])
        self.assertIn("OPENAI_API_KEY", body["missing_settings"])
        self.assertIn("PIPEDREAM_PROJECT_ID", body["missing_settings"])

        events = client.post("/slack/events", json={"type": "url_verification"})
        self.assertEqual(events.status_code, 503)

    def test_missing_slack_credentials_disable_events_route(self):
        cfg = replace(
            load_settings(),
            openai_api_key="sk-test",
            pipedream_project_id="proj_1",
            pipedream_environment="development",
            pipedream_external_user_id="ext-1",
            slack_bot_token=None,
            slack_signing_secret=None,
        )
        client = TestClient(create_app(cfg))

        self.assertEqual(client.get("/health").json()["missing_settings"], [])
        self.assertEqual(client.post("/slack/events", json={}).status_code, 503)


class SocketModeRunnerTests(unittest.TestCase):
    def _cfg(self, **overrides):
        base = dict(
            openai_api_key="sk-test",
            pipedream_project_id="proj_1",
            pipedream_environment="development",
            pipedream_external_user_id="ext-1",
            slack_bot_token="xoxb-test",
            slack_signing_secret=None,
            slack_app_token="xapp-test",
        )
        base.update(overrides)
        return replace(load_settings(), **base)

    def test_missing_app_token_exits_without_connecting(self):
        with mock.patch("mailbridge.main.start_socket_mode") as start:
            with self.assertRaises(SystemExit):
                run_socket_mode(self._cfg(slack_app_token=None))
        start.assert_not_called()

    def test_missing_core_settings_exit_without_connecting(self):
        with mock.patch("mailbridge.main.start_socket_mode") as start:
            with self.assertRaises(SystemExit):
                run_socket_mode(self._cfg(openai_api_key=None))
        start.assert_not_called()

    def test_configured_runner_connects_bolt_app_with_app_token(self):
        with mock.patch("mailbridge.main.start_socket_mode") as start:
            run_socket_mode(self._cfg())

        start.assert_called_once()
        slack_app, app_token = start.call_args.args
        self.assertIsInstance(slack_app, App)
        self.assertEqual(app_token, "xapp-test")


if __name__ == "__main__":
    unittest.main()
