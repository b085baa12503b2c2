"""
Walks a running server through the user lifecycle:
health, create, read, update, delete, restore, drop.
"""
import base64
import json
import os
import urllib.error
import urllib.request


def _auth(username: str, password: str) -> str:
    raw = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {raw}"


def _post(base: str, path: str, payload: dict, auth: str) -> dict:
    req = urllib.request.Request(
        f"{base}{path}",
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json", "Authorization": auth},
    )
    try:
        raw = urllib.request.urlopen(req, timeout=15).read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        raw = exc.read().decode("utf-8")
    return json.loads(raw)


def main() -> int:
    base = os.getenv("SMOKE_API_BASE", "http://localhost:8000").rstrip("/")
    auth = _auth(
        os.getenv("DEFAULT_ADMIN_USER", "admin"),
        os.getenv("DEFAULT_ADMIN_PASSWORD", "change_me_admin_password"),
    )
    user = os.getenv("SMOKE_USER", "smoke_user")

    health_raw = urllib.request.urlopen(f"{base}/health", timeout=15).read().decode("utf-8")
    health = json.loads(health_raw)
    assert health.get("success") is True, health
    print("health_ok")

    steps = [
        ("create", {"user": user, "pass": "smoke_pw"}),
        ("read", {"user": user}),
        ("update", {"user": user, "pass": "smoke_pw_2"}),
        ("delete", {"user": user}),
        ("restore", {"user": user}),
        ("drop", {"user": user}),
    ]
    for action, payload in steps:
        result = _post(base, f"/user/{action}", payload, auth)
        assert result.get("success") is True, (action, result)
        print(f"{action}_ok")

    gone = _post(base, "/user/read", {"user": user}, auth)
    assert gone.get("success") is False, gone
    print("dropped_ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
