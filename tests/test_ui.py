"""Tests for perch.ui — provider identity, @ui paths, view loading."""

import pytest

from perch.errors import ConfigurationError
from perch.ui import (
    DEFAULT_VIEW_PROVIDER,
    DefaultViewProvider,
    canonical_name,
    load_view_class,
    ui,
    ui_path_of,
    view_path,
)


class _Untagged:
    def resolve(self, request):
        return None


class TestCanonicalName:
    def test_type_tag_wins(self) -> None:
        assert canonical_name(DefaultViewProvider(object)) == DEFAULT_VIEW_PROVIDER

    def test_falls_back_to_qualified_class_name(self) -> None:
        assert canonical_name(_Untagged()) == f"{__name__}._Untagged"

    def test_same_name_from_another_class_object(self) -> None:
        """A re-imported copy of the default provider is recognized by name."""
        clone = type("DefaultViewProvider", (), {"__module__": "perch.ui"})

        assert clone is not DefaultViewProvider
        assert canonical_name(clone()) == DEFAULT_VIEW_PROVIDER


class TestUIDecorator:
    def test_declares_path(self) -> None:
        @ui("/orders/")
        class Orders:
            pass

        assert ui_path_of(Orders) == "orders"

    def test_root_path(self) -> None:
        @ui()
        class Home:
            pass

        assert ui_path_of(Home) == ""

    def test_not_inherited(self) -> None:
        @ui("base")
        class Base:
            pass

        class Child(Base):
            pass

        assert ui_path_of(Child) is None

    def test_non_class(self) -> None:
        assert ui_path_of(lambda: None) is None
        assert ui_path_of(None) is None


class TestViewPath:
    @pytest.mark.parametrize(
        ("path_info", "expected"),
        [
            (None, ""),
            ("", ""),
            ("/", ""),
            ("/orders", "orders"),
            ("/orders/7", "orders"),
            ("/forwarded/sub", "forwarded"),
        ],
    )
    def test_first_segment(self, path_info: str | None, expected: str) -> None:
        assert view_path(path_info) == expected


class TestLoadViewClass:
    def test_loads(self) -> None:
        from collections import OrderedDict

        assert load_view_class("collections:OrderedDict") is OrderedDict

    @pytest.mark.parametrize("ref", ["collections", ":OrderedDict", "collections:"])
    def test_malformed(self, ref: str) -> None:
        with pytest.raises(ConfigurationError, match="module:Class"):
            load_view_class(ref)

    def test_missing_module(self) -> None:
        with pytest.raises(ConfigurationError, match="Cannot import"):
            load_view_class("no_such_module_xyz:View")

    def test_missing_attribute(self) -> None:
        with pytest.raises(ConfigurationError, match="has no view"):
            load_view_class("collections:NoSuchView")


class TestDefaultViewProvider:
    def test_serves_configured_view_for_any_path(self) -> None:
        class Main:
            pass

        provider = DefaultViewProvider(Main)

        assert isinstance(provider.resolve(object()), Main)  # type: ignore[arg-type]
