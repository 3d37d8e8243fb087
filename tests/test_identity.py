"""Tests for container identity resolution."""

from __future__ import annotations

import hashlib
import re

import pytest

from devc.identity import (
    compose_container_name,
    compose_project_name,
    path_fingerprint,
    resolve_identity,
    sanitize_name,
)


class TestPathFingerprint:
    def test_is_eight_hex_chars(self):
        fp = path_fingerprint("/Users/a/proj1")
        assert re.fullmatch(r"[0-9a-f]{8}", fp)

    def test_stable_across_calls(self):
        assert path_fingerprint("/Users/a/proj1") == path_fingerprint("/Users/a/proj1")

    def test_distinct_paths_differ(self):
        assert path_fingerprint("/Users/a/proj1") != path_fingerprint("/Users/a/proj2")

    def test_prefix_of_sha256(self):
        expected = hashlib.sha256(b"/ws/myproj").hexdigest()[:8]
        assert path_fingerprint("/ws/myproj") == expected

    def test_non_ascii_path_hashed_as_utf8(self):
        expected = hashlib.sha256("/ws/プロジェクト".encode()).hexdigest()[:8]
        assert path_fingerprint("/ws/プロジェクト") == expected


class TestSanitizeName:
    def test_folds_case_and_spaces(self):
        assert sanitize_name("My Project") == "my_project"

    def test_already_clean(self):
        assert sanitize_name("api-server") == "api-server"


class TestResolveIdentity:
    def test_basename_session_fingerprint(self):
        ident = resolve_identity("/ws/myproj")
        assert ident.name == f"myproj-default-{path_fingerprint('/ws/myproj')}"
        assert ident.session_label == "default"
        assert ident.path_fingerprint == path_fingerprint("/ws/myproj")

    def test_configured_name_is_sanitized(self):
        ident = resolve_identity("/ws/myproj", configured_name="My Project")
        assert ident.name == f"my_project-default-{path_fingerprint('/ws/myproj')}"

    def test_explicit_override_used_verbatim(self):
        ident = resolve_identity(
            "/ws/myproj", explicit_name="Custom Name", configured_name="My Project"
        )
        assert ident.name == "Custom Name"
        assert ident.explicit_name == "Custom Name"

    def test_session_label_in_name(self):
        ident = resolve_identity("/ws/myproj", session_label="feature-x")
        assert ident.name == f"myproj-feature-x-{path_fingerprint('/ws/myproj')}"

    def test_empty_session_falls_back_to_default(self):
        ident = resolve_identity("/ws/myproj", session_label="")
        assert ident.session_label == "default"

    def test_deterministic(self):
        a = resolve_identity("/ws/myproj", session_label="s1")
        b = resolve_identity("/ws/myproj", session_label="s1")
        assert a == b

    def test_same_basename_different_paths_do_not_collide(self):
        a = resolve_identity("/home/alice/app")
        b = resolve_identity("/home/bob/app")
        assert a.name != b.name

    def test_trailing_slash_ignored_for_basename(self):
        ident = resolve_identity("/ws/myproj/")
        assert ident.name.startswith("myproj-default-")

    def test_basename_is_sanitized(self):
        ident = resolve_identity("/ws/My Proj")
        assert ident.name == f"my_proj-default-{path_fingerprint('/ws/My Proj')}"

    def test_relative_path_rejected(self):
        with pytest.raises(ValueError, match="absolute"):
            resolve_identity("ws/myproj")


class TestComposeNames:
    def test_container_name_is_first_replica(self):
        fp = path_fingerprint("/ws/myproj")
        assert compose_container_name("/ws/myproj", "app") == f"{fp}-myproj-app-1"

    def test_project_name_is_sanitized(self):
        fp = path_fingerprint("/ws/My Proj")
        assert compose_project_name("/ws/My Proj") == f"{fp}-my_proj"
