"""Tests for modbridge.core.models."""

from pathlib import Path

import pytest

from modbridge.core.exceptions import RequestValidationError
from modbridge.core.models import (
    ArchiveInstallRequest,
    Instance,
    InstanceKind,
    InstallItem,
    InstallMode,
    InstallRequest,
    InstallResult,
    ItemType,
    StatusReport,
)


class TestItemType:
    """Tests for ItemType."""

    @pytest.mark.parametrize(
        ("item_type", "subdirectory"),
        [
            (ItemType.MOD, "mods"),
            (ItemType.RESOURCEPACK, "resourcepacks"),
            (ItemType.CONFIG, "config"),
        ],
    )
    def test_subdirectory(self, item_type: ItemType, subdirectory: str) -> None:
        """Each item type maps to its instance subdirectory."""
        assert item_type.subdirectory == subdirectory


class TestInstallItem:
    """Tests for InstallItem."""

    def test_parses_wire_names(self) -> None:
        """InstallItem accepts the web client's field names."""
        # Arrange & Act
        item = InstallItem.model_validate(
            {"type": "resourcepack", "url": "http://x/b.zip", "fileName": "b.zip"}
        )

        # Assert
        assert item.item_type == ItemType.RESOURCEPACK
        assert item.url == "http://x/b.zip"
        assert item.file_name == "b.zip"

    def test_missing_type_defaults_to_mod(self) -> None:
        """A missing type is treated as a mod."""
        item = InstallItem.model_validate({"url": "http://x/a.jar", "fileName": "a"})

        assert item.item_type == ItemType.MOD

    @pytest.mark.parametrize("raw_type", ["shader", "", None, 42])
    def test_unknown_type_defaults_to_mod(self, raw_type: object) -> None:
        """An unrecognized type is treated as a mod."""
        item = InstallItem.model_validate({"type": raw_type})

        assert item.item_type == ItemType.MOD

    def test_usable_item(self) -> None:
        """An item with url and plain file name is usable."""
        item = InstallItem(url="https://cdn.example.com/a.jar", file_name="a.jar")

        assert item.is_usable is True

    @pytest.mark.parametrize(
        ("url", "file_name"),
        [
            (None, "a.jar"),
            ("", "a.jar"),
            ("http://x/a.jar", None),
            ("http://x/a.jar", "  "),
            ("http://x/a.jar", "../a.jar"),
            ("http://x/a.jar", "sub/a.jar"),
            ("http://x/a.jar", "..\\a.jar"),
            ("http://x/a.jar", "/etc/passwd"),
            ("http://x/a.jar", ".."),
        ],
    )
    def test_unusable_items(self, url: str | None, file_name: str | None) -> None:
        """Items without url, without file name or with path parts are unusable."""
        item = InstallItem(url=url, file_name=file_name)

        assert item.is_usable is False


class TestInstallRequest:
    """Tests for InstallRequest."""

    def test_from_payload(self) -> None:
        """from_payload parses a full request body."""
        # Arrange
        payload = {
            "mode": "full",
            "autoTerminate": True,
            "instanceId": "ver_1_21_4",
            "gameDir": "/games/mc",
            "items": [{"type": "mod", "url": "http://x/a.jar", "fileName": "a.jar"}],
        }

        # Act
        request = InstallRequest.from_payload(payload)

        # Assert
        assert request.mode == InstallMode.FULL
        assert request.auto_terminate is True
        assert request.instance_id == "ver_1_21_4"
        assert request.game_dir == Path("/games/mc")
        assert len(request.items) == 1

    def test_defaults(self) -> None:
        """Mode defaults to patch and target selectors to None."""
        request = InstallRequest.from_payload({"items": []})

        assert request.mode == InstallMode.PATCH
        assert request.auto_terminate is False
        assert request.instance_id is None
        assert request.game_dir is None

    def test_unknown_mode_is_patch(self) -> None:
        """An unknown mode never turns into a destructive install."""
        request = InstallRequest.from_payload({"mode": "wipe", "items": []})

        assert request.mode == InstallMode.PATCH

    def test_empty_game_dir_is_none(self) -> None:
        """An empty gameDir falls back to instance resolution."""
        request = InstallRequest.from_payload({"gameDir": "", "items": []})

        assert request.game_dir is None

    def test_non_object_items_become_holes(self) -> None:
        """List entries that are not objects are kept as None."""
        request = InstallRequest.from_payload(
            {"items": [None, "a.jar", {"url": "http://x/a.jar", "fileName": "a"}]}
        )

        assert request.items[0] is None
        assert request.items[1] is None
        assert isinstance(request.items[2], InstallItem)

    @pytest.mark.parametrize(
        "bad_item",
        [
            {"url": "http://x/b.jar", "fileName": 5},
            {"url": 123, "fileName": "b.jar"},
            {"url": ["http://x/b.jar"], "fileName": {"name": "b.jar"}},
        ],
    )
    def test_non_string_fields_make_item_unusable(
        self, bad_item: dict[str, object]
    ) -> None:
        """An item with a non-string url or fileName is skipped, not fatal."""
        # Arrange
        payload = {"items": [{"url": "http://x/a.jar", "fileName": "a.jar"}, bad_item]}

        # Act
        request = InstallRequest.from_payload(payload)

        # Assert
        good, bad = request.items
        assert good is not None and good.is_usable
        assert bad is not None and not bad.is_usable

    @pytest.mark.parametrize(
        "payload",
        [None, [], "items", {}, {"items": "a.jar"}, {"items": None}],
    )
    def test_rejects_missing_items_list(self, payload: object) -> None:
        """from_payload rejects bodies without an items list."""
        with pytest.raises(RequestValidationError, match="No items to install"):
            InstallRequest.from_payload(payload)

    def test_rejects_invalid_field_types(self) -> None:
        """from_payload wraps pydantic errors."""
        with pytest.raises(RequestValidationError, match="Invalid install request"):
            InstallRequest.from_payload({"items": [], "autoTerminate": "maybe"})


class TestArchiveInstallRequest:
    """Tests for ArchiveInstallRequest."""

    def test_from_payload(self) -> None:
        """from_payload parses url, mode and autoTerminate."""
        request = ArchiveInstallRequest.from_payload(
            {"url": "https://x/pack.zip", "mode": "full", "autoTerminate": True}
        )

        assert request.url == "https://x/pack.zip"
        assert request.mode == InstallMode.FULL
        assert request.auto_terminate is True

    @pytest.mark.parametrize("payload", [None, {}, {"url": ""}])
    def test_rejects_missing_url(self, payload: object) -> None:
        """from_payload rejects bodies without a url."""
        with pytest.raises(RequestValidationError):
            ArchiveInstallRequest.from_payload(payload)


class TestInstallResult:
    """Tests for InstallResult."""

    def test_success_response(self) -> None:
        """A successful result has no further payload on the wire."""
        result = InstallResult(success=True, installed=[Path("/x/mods/a.jar")])

        assert result.to_response() == {"success": True}

    def test_failure_response(self) -> None:
        """A failed result carries the error message."""
        result = InstallResult(success=False, error="HTTP error: boom")

        assert result.to_response() == {"success": False, "error": "HTTP error: boom"}

    def test_failure_without_message(self) -> None:
        """A failed result without message still reports an error."""
        result = InstallResult(success=False)

        assert result.to_response() == {"success": False, "error": "Unknown error"}


class TestStatusReport:
    """Tests for StatusReport serialization."""

    def test_dumps_wire_names(self) -> None:
        """StatusReport serializes with the web client's field names."""
        # Arrange
        report = StatusReport(
            version="1.1.0",
            token="abc",
            os="linux",
            mc_path="/home/steve/.minecraft",
            instances=[
                Instance(
                    id="ver_1_21_4",
                    display_name="1.21.4 (Version Folder)",
                    root_path=Path("/home/steve/.minecraft/versions/1.21.4"),
                    kind=InstanceKind.VERSIONED,
                    version_folder="1.21.4",
                )
            ],
        )

        # Act
        data = report.model_dump(mode="json", by_alias=True)

        # Assert
        assert data["status"] == "ready"
        assert data["mcPath"] == "/home/steve/.minecraft"
        instance = data["instances"][0]
        assert instance["name"] == "1.21.4 (Version Folder)"
        assert instance["path"] == "/home/steve/.minecraft/versions/1.21.4"
        assert instance["kind"] == "version"
        assert instance["versionFolder"] == "1.21.4"
