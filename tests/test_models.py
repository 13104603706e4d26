"""Tests for the shared Pydantic models and host helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from idtenant.models import (
    AdvanceAuthResult,
    AnswerType,
    Envelope,
    GlobalConfig,
    Mechanism,
    Session,
    StartAuthResult,
    canonical_host,
    tenant_id,
)


class TestHostHelpers:
    @pytest.mark.parametrize(
        "raw",
        [
            "acme.id.example.cloud",
            "ACME.id.example.cloud",
            "https://acme.id.example.cloud/",
            "acme.id.example.cloud/identity",
            "  acme.id.example.cloud  ",
        ],
    )
    def test_canonical_host(self, raw):
        assert canonical_host(raw) == "acme.id.example.cloud"

    def test_canonical_host_empty(self):
        assert canonical_host("") == ""

    def test_tenant_id_is_first_label(self):
        assert tenant_id("https://Acme.id.example.cloud") == "acme"


class TestSession:
    def test_naive_timestamps_become_utc(self):
        session = Session(host="h", started_at=datetime(2026, 1, 1, 8, 0))
        assert session.started_at.tzinfo is timezone.utc

    def test_base_url(self):
        assert Session(host="h.example", started_at=datetime.now(timezone.utc)).base_url == (
            "https://h.example"
        )

    @pytest.mark.parametrize(
        "headers, expected",
        [
            ({"Authorization": "Bearer abc"}, True),
            ({"Authorization": "Bearer "}, False),
            ({"Authorization": "Basic abc"}, False),
            ({}, False),
        ],
    )
    def test_has_bearer(self, headers, expected):
        session = Session(host="h", auth_headers=headers, started_at=datetime.now(timezone.utc))
        assert session.has_bearer() is expected

    def test_json_roundtrip_keeps_timestamps(self):
        session = Session(
            host="h",
            user="jane",
            started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            last_validated_at=datetime(2026, 1, 1, 0, 3, tzinfo=timezone.utc),
        )
        restored = Session.model_validate_json(session.model_dump_json())
        assert restored == session


class TestWireModels:
    def test_envelope_aliases_and_extras(self):
        env = Envelope.model_validate(
            {"Success": True, "Result": {"x": 1}, "Message": None, "IsSoftError": False}
        )
        assert env.success is True
        assert env.result == {"x": 1}
        assert env.model_dump(by_alias=True)["IsSoftError"] is False

    def test_envelope_defaults_to_failure(self):
        assert Envelope.model_validate({}).success is False

    def test_mechanism_label_precedence(self):
        assert Mechanism(MechanismId="m1").label == "m1"
        assert Mechanism(MechanismId="m1", Name="UP").label == "UP"
        assert (
            Mechanism(MechanismId="m1", Name="UP", PromptSelectMech="Password").label
            == "Password"
        )

    def test_answer_type(self):
        assert AnswerType.TEXT.is_out_of_band is False
        assert AnswerType.START_OOB.is_out_of_band is True
        assert AnswerType.START_TEXT_OOB.is_out_of_band is True

    def test_unknown_answer_type_is_kept_and_out_of_band(self):
        mech = Mechanism.model_validate({"MechanismId": "m9", "AnswerType": "StartPasskey"})
        assert mech.answer_type == "StartPasskey"
        assert mech.is_out_of_band is True
        assert Mechanism(MechanismId="m1").is_out_of_band is False
        assert Mechanism(MechanismId="m1", AnswerType="Text").answer_type is AnswerType.TEXT

    def test_start_result_parses_challenges(self):
        result = StartAuthResult.model_validate(
            {
                "SessionId": "s1",
                "Challenges": [{"Mechanisms": [{"MechanismId": "m1", "AnswerType": "StartOob"}]}],
            }
        )
        assert result.challenges[0].mechanisms[0].answer_type is AnswerType.START_OOB

    def test_bearer_prefers_oauth_tokens(self):
        result = AdvanceAuthResult(
            Summary="LoginSuccess", Token="legacy", OAuthTokens={"access_token": "oauth"}
        )
        assert result.bearer_token() == "oauth"

    def test_bearer_falls_back_to_token(self):
        assert AdvanceAuthResult(Token="legacy", OAuthTokens={}).bearer_token() == "legacy"
        assert AdvanceAuthResult(Token="").bearer_token() is None


class TestGlobalConfig:
    def test_defaults(self):
        config = GlobalConfig()
        assert config.sessions.persist is True
        assert config.output.format == "auto"
        assert config.extensions.enabled == []
