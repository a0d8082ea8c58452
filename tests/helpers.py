import time

from offerdesk.core.settings import Settings

AM = {"Authorization": "Basic Account-Manager"}
DEV = {"Authorization": "Basic Developer"}
USER = {"Authorization": "Basic User"}


def make_settings(tmp_path, backend="sql", **overrides) -> Settings:
    values = dict(
        STORE_BACKEND=backend,
        DB_URL=f"sqlite+aiosqlite:///{tmp_path / 'offerdesk-test.db'}",
        DATA_DIR=str(tmp_path / "data"),
        ASSETS_DIR=str(tmp_path / "assets"),
        TAG_SEARCH_DELAY_SECONDS=0,
        SWEEP_PERIODIC=False,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def wait_for_search(client, task_id, headers=USER, timeout=10.0):
    """Poll a tag search until it leaves Pending; returns the last response."""
    deadline = time.monotonic() + timeout
    while True:
        r = client.get(f"/tags/search/{task_id}", headers=headers)
        if r.status_code != 202 or time.monotonic() > deadline:
            return r
        time.sleep(0.05)


def upload(client, offer_id, name="notes.txt", body=b"hello", headers=DEV):
    return client.post(
        f"/offers/{offer_id}/files",
        files={"file": (name, body, "text/plain")},
        headers=headers,
    )
