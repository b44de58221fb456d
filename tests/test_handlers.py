"""Tests for handler table merging."""

from __future__ import annotations

from hostserve.serve.document import HTTPHandler, PathHandler, ProxyHandler, TextHandler
from hostserve.serve.handlers import merge_handler


class TestMergeHandler:
    """Tests for merge_handler."""

    def test_inserts_into_empty_table(self) -> None:
        table: dict[str, HTTPHandler] = {}
        mount_point = merge_handler(table, "/", ProxyHandler("http://127.0.0.1:3000"))

        assert mount_point == "/"
        assert table == {"/": ProxyHandler("http://127.0.0.1:3000")}

    def test_overwrites_same_mount_point(self) -> None:
        table: dict[str, HTTPHandler] = {"/": TextHandler("old")}
        merge_handler(table, "/", TextHandler("new"))

        assert table == {"/": TextHandler("new")}

    def test_keeps_unrelated_mount_points(self) -> None:
        table: dict[str, HTTPHandler] = {
            "/": ProxyHandler("http://127.0.0.1:3000"),
            "/foo": TextHandler("foo"),
        }
        merge_handler(table, "/bar", ProxyHandler("https://127.0.0.1:8443"))

        assert set(table) == {"/", "/foo", "/bar"}

    def test_directory_gets_trailing_slash(self) -> None:
        table: dict[str, HTTPHandler] = {}
        mount_point = merge_handler(table, "/dir", PathHandler("/srv/dir"), is_directory=True)

        assert mount_point == "/dir/"
        assert table == {"/dir/": PathHandler("/srv/dir")}

    def test_directory_with_trailing_slash_unchanged(self) -> None:
        table: dict[str, HTTPHandler] = {}
        mount_point = merge_handler(table, "/dir/", PathHandler("/srv/dir"), is_directory=True)

        assert mount_point == "/dir/"

    def test_directory_mount_replaces_file_mount(self) -> None:
        """Test that /dir/ removes an existing /dir."""
        table: dict[str, HTTPHandler] = {"/dir": PathHandler("/srv/file")}
        merge_handler(table, "/dir", PathHandler("/srv/dir"), is_directory=True)

        assert table == {"/dir/": PathHandler("/srv/dir")}

    def test_file_mount_replaces_directory_mount(self) -> None:
        """Test that /dir removes an existing /dir/."""
        table: dict[str, HTTPHandler] = {"/dir/": PathHandler("/srv/dir")}
        merge_handler(table, "/dir", PathHandler("/srv/file"))

        assert table == {"/dir": PathHandler("/srv/file")}

    def test_overlap_applies_to_any_handler_kind(self) -> None:
        table: dict[str, HTTPHandler] = {"/api/": ProxyHandler("http://127.0.0.1:3000")}
        merge_handler(table, "/api", TextHandler("gone"))

        assert table == {"/api": TextHandler("gone")}

    def test_only_exact_slash_variant_is_removed(self) -> None:
        """Test that deeper prefixes are not treated as overlaps."""
        table: dict[str, HTTPHandler] = {
            "/foo/bar": TextHandler("bar"),
            "/fo": TextHandler("fo"),
            "/foo//": TextHandler("double"),
        }
        merge_handler(table, "/foo", TextHandler("foo"))

        assert set(table) == {"/foo/bar", "/fo", "/foo//", "/foo"}

    def test_root_mount_does_not_remove_others(self) -> None:
        table: dict[str, HTTPHandler] = {"/x": TextHandler("x")}
        merge_handler(table, "/", TextHandler("root"))

        assert set(table) == {"/", "/x"}
