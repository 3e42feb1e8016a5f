"""Tests for the structural pre-check."""

from safety.precheck import has_structural_marker

from conftest import make_zip

def test_archive_with_manifest():
    """Test a zip containing the manifest passes, in any folder and case."""
    assert has_structural_marker(make_zip("fxmanifest.lua", "client.lua"), "garage.zip")
    assert has_structural_marker(make_zip("garage/FXManifest.lua"), "garage.zip")

def test_archive_without_manifest():
    """Test a zip without the manifest fails."""
    assert not has_structural_marker(make_zip("client.lua", "server.lua"), "garage.zip")
    assert not has_structural_marker(make_zip("fxmanifest.lua.bak"), "garage.zip")

def test_bare_manifest_file():
    """Test a bare file passes only when it is the manifest itself."""
    assert has_structural_marker(b"fx_version 'cerulean'", "fxmanifest.lua")
    assert not has_structural_marker(b"print('hi')", "client.lua")

def test_missing_or_corrupt_content():
    """Test missing and corrupt uploads fail."""
    assert not has_structural_marker(None, "fxmanifest.lua")
    assert not has_structural_marker(b"", "garage.zip")
    assert not has_structural_marker(b"PK\x03\x04 truncated", "garage.zip")

def test_custom_marker():
    """Test the marker name is configurable."""
    archive = make_zip("__resource.lua")
    assert has_structural_marker(archive, "legacy.zip", marker="__resource.lua")
    assert not has_structural_marker(archive, "legacy.zip")
