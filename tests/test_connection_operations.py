"""Tests for ConnectionManager operations against a fake Connectors API."""
import json
import os
import logging
from unittest import mock

import pytest

from appint_toolkit.connections.domains.errors import DecodeError, ImportFailedError
from appint_toolkit.connections.workflows import policy
from appint_toolkit.connections.workflows.connection_operations import ConnectionManager

from .conftest import CONNECTIONS_PATH, OPERATIONS_PATH, PROJECT, connection_file

VERSION = "projects/p/locations/global/providers/gcp/connectors/{}/versions/1"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def manager(ctx, http, iam, secret_store, sleeps):
    return ConnectionManager(ctx, http=http, iam=iam, secret_store=secret_store,
                             kms_client=mock.MagicMock(), sleep=sleeps.append)


def _server_connection(name, connector="mysql", **extra):
    doc = {
        "name": f"projects/{PROJECT}/locations/us-central1/connections/{name}",
        "connectorVersion": VERSION.format(connector),
        "configVariables": [{"key": "project_id", "stringValue": PROJECT}],
        "authConfig": {
            "authType": "USER_PASSWORD",
            "userPassword": {"username": "u",
                             "password": {"secretVersion": f"projects/{PROJECT}/secrets/pw/versions/2"}},
        },
    }
    doc.update(extra)
    return doc


def _deny_listing(monkeypatch, folder_name):
    """Make os.walk fail to list any folder called folder_name."""
    real_scandir = os.scandir

    def scandir(path="."):
        path = os.fspath(path)
        if os.path.basename(path) == folder_name:
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir)


class TestCreate:
    def test_posts_request_with_connection_id(self, manager, api):
        api.json("POST", CONNECTIONS_PATH, {"name": f"{OPERATIONS_PATH}/op-1"})

        result = manager.create("orders", json.dumps(connection_file()))

        assert result == {"name": f"{OPERATIONS_PATH}/op-1"}
        request = api.calls("POST", CONNECTIONS_PATH)[0]
        assert request.url.params["connectionId"] == "orders"
        body = json.loads(request.content)
        assert body["connectorVersion"].endswith("/connectors/mysql/versions/1")
        assert "connectorDetails" not in body

    def test_wait_polls_until_done_and_returns_initial_operation(self, manager, api, sleeps, caplog):
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1", "done": False})
        api.json("GET", f"{OPERATIONS_PATH}/op-1",
                 {"name": "operations/op-1", "done": False},
                 {"name": "operations/op-1", "done": True, "response": {"name": "orders"}})

        with caplog.at_level(logging.INFO):
            result = manager.create("orders", json.dumps(connection_file()), wait=True)

        assert result == {"name": "operations/op-1", "done": False}
        assert len(api.calls("GET", f"{OPERATIONS_PATH}/op-1")) == 2
        assert sleeps == [10, 10]
        assert "Connection completed successfully!" in caplog.text

    def test_wait_restores_output_mode(self, manager, api, ctx):
        ctx.print_response = True
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1"})
        api.json("GET", f"{OPERATIONS_PATH}/op-1", {"done": True})

        manager.create("orders", json.dumps(connection_file()), wait=True)

        assert ctx.print_response is True

    def test_invalid_document_sends_nothing(self, manager, api):
        with pytest.raises(DecodeError):
            manager.create("orders", "not json")
        assert api.requests == []


class TestGet:
    def test_plain_get_returns_server_document(self, manager, api):
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders"))
        assert manager.get("orders") == _server_connection("orders")

    def test_view_is_sent(self, manager, api):
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders"))
        manager.get("orders", view="FULL")
        assert api.requests[0].url.params["view"] == "FULL"

    def test_minimal_replaces_identifiers_with_details(self, manager, api):
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders"))

        result = manager.get("orders", minimal=True)

        assert "name" not in result
        assert "connectorVersion" not in result
        assert result["connectorDetails"] == {"name": "mysql", "provider": "gcp", "version": 1}
        assert "password" in result["authConfig"]["userPassword"]

    def test_minimal_with_overrides_redacts(self, manager, api):
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders", connector="pubsub"))

        result = manager.get("orders", minimal=True, overrides=True)

        assert result["authConfig"]["userPassword"] == {"username": "u", "passwordDetails": {"secretName": "pw"}}
        assert result["configVariables"] == [{"key": "project_id", "stringValue": "$PROJECT_ID$"}]

    def test_minimal_prints_only_transformed_payload(self, manager, api, ctx, capsys):
        ctx.print_response = True
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders"))

        manager.get("orders", minimal=True)

        printed = json.loads(capsys.readouterr().out)
        assert "connectorDetails" in printed
        assert ctx.print_response is True


class TestListPatchDelete:
    def test_list_omits_default_page_size(self, manager, api):
        api.json("GET", CONNECTIONS_PATH, {"connections": []})
        manager.list()
        assert "pageSize" not in api.requests[0].url.params

    def test_list_sends_paging_parameters(self, manager, api):
        api.json("GET", CONNECTIONS_PATH, {"connections": []})
        manager.list(page_size=5, page_token="tok", filter="state=ACTIVE", order_by="name")
        params = api.requests[0].url.params
        assert params["pageSize"] == "5"
        assert params["pageToken"] == "tok"
        assert params["filter"] == "state=ACTIVE"
        assert params["orderBy"] == "name"

    def test_patch_joins_update_mask(self, manager, api):
        api.json("PATCH", f"{CONNECTIONS_PATH}/orders", {"name": "operations/op-2"})
        content = json.dumps({"description": "new"})

        manager.patch("orders", content, ["description", "labels"])

        request = api.requests[0]
        assert request.url.params["updateMask"] == "description,labels"
        assert json.loads(request.content) == {"description": "new"}

    def test_patch_rejects_malformed_json(self, manager, api):
        with pytest.raises(DecodeError):
            manager.patch("orders", "{", [])
        assert api.requests == []

    def test_delete(self, manager, api):
        api.json("DELETE", f"{CONNECTIONS_PATH}/orders", {"name": "operations/op-3"})
        assert manager.delete("orders") == {"name": "operations/op-3"}

    def test_get_iam_policy(self, manager, api):
        api.json("GET", f"{CONNECTIONS_PATH}/orders:getIamPolicy", {"etag": "BwX"})
        assert manager.get_iam_policy("orders") == {"etag": "BwX"}


class TestImport:
    def test_creates_only_json_files(self, manager, api, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps(connection_file()))
        (tmp_path / "b.txt").write_text("ignored")
        (tmp_path / "nested").mkdir()
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1"})

        manager.import_connections(str(tmp_path))

        creates = api.calls("POST", CONNECTIONS_PATH)
        assert len(creates) == 1
        assert creates[0].url.params["connectionId"] == "a"

    def test_skips_existing_connections(self, manager, api, tmp_path):
        (tmp_path / "orders.json").write_text(json.dumps(connection_file()))
        api.json("GET", f"{CONNECTIONS_PATH}/orders", _server_connection("orders"))

        manager.import_connections(str(tmp_path))

        assert api.calls("POST", CONNECTIONS_PATH) == []

    def test_collects_errors_after_trying_every_file(self, manager, api, tmp_path):
        (tmp_path / "a.json").write_text("{broken")
        (tmp_path / "b.json").write_text(json.dumps(connection_file()))
        (tmp_path / "c.json").write_text(json.dumps({"description": "no details"}))
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1"})

        with pytest.raises(ImportFailedError) as exc_info:
            manager.import_connections(str(tmp_path))

        assert len(exc_info.value.errors) == 2
        assert exc_info.value.errors[0].startswith("a:")
        assert exc_info.value.errors[1].startswith("c:")
        assert len(api.calls("POST", CONNECTIONS_PATH)) == 1

    def test_malformed_entries_do_not_stop_later_files(self, manager, api, tmp_path):
        bad = connection_file()
        bad["configVariables"].append("oops")
        (tmp_path / "a.json").write_text(json.dumps(bad))
        (tmp_path / "b.json").write_text(json.dumps(connection_file()))
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1"})

        with pytest.raises(ImportFailedError) as exc_info:
            manager.import_connections(str(tmp_path))

        assert [e.split(":")[0] for e in exc_info.value.errors] == ["a"]
        creates = api.calls("POST", CONNECTIONS_PATH)
        assert [r.url.params["connectionId"] for r in creates] == ["b"]

    def test_unreadable_subfolder_is_skipped_and_errors_kept(self, manager, api, tmp_path,
                                                             monkeypatch, caplog):
        (tmp_path / "a.json").write_text("{broken")
        (tmp_path / "z.json").write_text(json.dumps(connection_file()))
        (tmp_path / "locked").mkdir()
        (tmp_path / "locked" / "hidden.json").write_text(json.dumps(connection_file()))
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/op-1"})
        _deny_listing(monkeypatch, "locked")

        with pytest.raises(ImportFailedError) as exc_info:
            manager.import_connections(str(tmp_path))

        assert [e.split(":")[0] for e in exc_info.value.errors] == ["a"]
        creates = api.calls("POST", CONNECTIONS_PATH)
        assert [r.url.params["connectionId"] for r in creates] == ["z"]
        assert "skipping folder" in caplog.text

    def test_unreadable_subfolder_raises_when_policy_is_strict(self, manager, api, tmp_path, monkeypatch):
        (tmp_path / "locked").mkdir()
        _deny_listing(monkeypatch, "locked")
        monkeypatch.setattr(policy, "IGNORE_IMPORT_WALK_ERRORS", False)

        with pytest.raises(PermissionError):
            manager.import_connections(str(tmp_path))

    def test_missing_folder_imports_nothing(self, manager, api, tmp_path, caplog):
        manager.import_connections(str(tmp_path / "missing"))
        assert api.requests == []
        assert "could not be read" in caplog.text

    def test_missing_folder_raises_when_policy_is_strict(self, manager, tmp_path, monkeypatch):
        monkeypatch.setattr(policy, "IGNORE_IMPORT_WALK_ERRORS", False)
        with pytest.raises(FileNotFoundError):
            manager.import_connections(str(tmp_path / "missing"))

    def test_output_is_restored(self, manager, api, ctx, tmp_path):
        ctx.print_response = True
        (tmp_path / "a.json").write_text("{broken")
        with pytest.raises(ImportFailedError):
            manager.import_connections(str(tmp_path))
        assert ctx.print_response is True


class TestExport:
    def test_writes_one_file_per_connection(self, manager, api, tmp_path):
        api.json("GET", CONNECTIONS_PATH, {"connections": [_server_connection("orders"),
                                                           _server_connection("billing")]})

        written = manager.export_connections(str(tmp_path / "out"))

        assert sorted(p.rsplit("/", 1)[-1] for p in written) == ["billing.json", "orders.json"]
        exported = json.loads((tmp_path / "out" / "orders.json").read_text())
        assert exported["connectorDetails"] == {"name": "mysql", "provider": "gcp", "version": 1}
        assert "name" not in exported
        assert "connectorVersion" not in exported
        assert api.requests[0].url.params["pageSize"] == "1000"

    def test_no_connections_writes_nothing(self, manager, api, tmp_path):
        api.json("GET", CONNECTIONS_PATH, {})
        out = tmp_path / "out"

        assert manager.export_connections(str(out)) == []
        assert not out.exists()

    def test_refuses_to_overwrite(self, manager, api, tmp_path):
        api.json("GET", CONNECTIONS_PATH, {"connections": [_server_connection("orders")]})
        (tmp_path / "orders.json").write_text("{}")

        with pytest.raises(FileExistsError):
            manager.export_connections(str(tmp_path))

    def test_force_overwrites(self, manager, api, tmp_path):
        api.json("GET", CONNECTIONS_PATH, {"connections": [_server_connection("orders")]})
        (tmp_path / "orders.json").write_text("{}")

        manager.export_connections(str(tmp_path), force=True)

        assert "connectorDetails" in json.loads((tmp_path / "orders.json").read_text())
