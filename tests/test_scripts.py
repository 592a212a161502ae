import importlib.util
import sys
from pathlib import Path

import pytest

from wod_gateway.services import usage
from tests.utils.auth import create_profile, new_user_id

SCRIPTS = Path(__file__).resolve().parent.parent / "scripts"


def _load(name: str):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_set_subscription_tier_updates_profile(monkeypatch, capsys):
    user_id = new_user_id()
    create_profile(user_id, "free")
    script = _load("set_subscription_tier")

    monkeypatch.setattr(sys, "argv", ["set_subscription_tier.py", "--user-id", user_id, "--tier", "pro"])
    script.main()

    assert usage.get_subscription_tier_sync(user_id) == "pro"
    assert capsys.readouterr().out.strip() == "pro"


def test_set_subscription_tier_requires_profile(monkeypatch):
    script = _load("set_subscription_tier")
    monkeypatch.setattr(
        sys, "argv", ["set_subscription_tier.py", "--user-id", new_user_id(), "--tier", "pro"]
    )
    with pytest.raises(SystemExit):
        script.main()


def test_set_subscription_tier_can_create(monkeypatch):
    user_id = new_user_id()
    script = _load("set_subscription_tier")
    monkeypatch.setattr(
        sys,
        "argv",
        ["set_subscription_tier.py", "--user-id", user_id, "--tier", "pro", "--create"],
    )
    script.main()

    assert usage.get_subscription_tier_sync(user_id) == "pro"


def test_usage_report(monkeypatch, capsys):
    today = usage.today_key()
    for user_id in (new_user_id(), new_user_id()):
        usage.increment_usage_sync(user_id, today)
        usage.increment_usage_sync(user_id, today)
    usage.increment_usage_sync(new_user_id(), "2000-01-01")
    script = _load("usage_report")

    monkeypatch.setattr(sys, "argv", ["usage_report.py", "--days", "1"])
    script.main()

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("date")
    assert lines[1].split() == [today, "2", "4"]
    assert len(lines) == 2
