from __future__ import annotations

import json
import logging

from roundtable.obs import logging as obs_logging


def _record(**extra) -> logging.LogRecord:
	record = logging.LogRecord("roundtable.test", logging.INFO, __file__, 1, "promotion_override", None, None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_binds_request_context_and_redacts() -> None:
	tokens = obs_logging.bind_context(request_id="req-123", route="/api/guests/{guest_id}/promote")
	try:
		line = obs_logging.JSONLogFormatter().format(
			_record(guest_id="g-1", email="gil@example.org", missing=["1 more charity event"])
		)
	finally:
		obs_logging.reset_context(tokens)

	payload = json.loads(line)
	assert payload["msg"] == "promotion_override"
	assert payload["request_id"] == "req-123"
	assert payload["route"] == "/api/guests/{guest_id}/promote"
	assert payload["guest_id"] == "g-1"
	assert payload["email"] == "[redacted]"
	assert payload["missing"] == ["1 more charity event"]
	assert obs_logging.current_request_id() is None


def test_long_collections_are_truncated() -> None:
	payload = json.loads(obs_logging.JSONLogFormatter().format(_record(ids=list(range(25)))))
	assert len(payload["ids"]) == 11
	assert payload["ids"][-1] == "…"


def test_sampling_keeps_warnings(monkeypatch) -> None:
	monkeypatch.setattr(obs_logging.settings, "obs_log_sampling_rate_info", 0.0)
	sampler = obs_logging.InfoSamplingFilter()
	warning = _record()
	warning.levelno = logging.WARNING
	assert sampler.filter(warning) is True
	assert sampler.filter(_record()) is False


def test_client_ip_is_logged_only_while_bound() -> None:
	formatter = obs_logging.JSONLogFormatter()
	tokens = obs_logging.bind_context(client_ip="10.0.0.7")
	try:
		assert json.loads(formatter.format(_record()))["ip"] == "10.0.0.7"
	finally:
		obs_logging.reset_context(tokens)
	assert "ip" not in json.loads(formatter.format(_record()))
