"""
Unit tests for include parsing and resolution.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from ttsbundle.errors import ModuleNotFoundError
from ttsbundle.grammar import MARKUP, SCRIPT
from ttsbundle.resolver import Resolver, candidate_names, parse_includes


def write(root, rel_path, content=""):
    path = os.path.join(str(root), rel_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', newline='') as f:
        f.write(content)
    return path


class TestParseIncludes:
    """Tests for parse_includes()."""

    def test_script_directive_forms(self):
        """All three spellings of #include are recognized, in source order."""
        content = '#include lib/util\nprint("x")\n  #include <vendor/json>\n#include "deck"\n'
        directives = parse_includes(content, SCRIPT)
        assert [d.name for d in directives] == ["lib/util", "vendor/json", "deck"]
        assert [d.line for d in directives] == [1, 3, 4]
        assert directives[1].text == "  #include <vendor/json>"

    def test_malformed_script_directives_are_ignored(self):
        """Lines that only resemble a directive are left alone."""
        content = '#include\n#includes lib\nlocal x = 1 #include lib\n-- #include lib\n'
        assert parse_includes(content, "script") == []

    def test_markup_directive(self):
        """A self-closing Include element with a src attribute is a directive."""
        content = '<Panel>\n    <Include src="ui/button"/>\n    <Include src=\'ui/label\' />\n</Panel>\n'
        directives = parse_includes(content, MARKUP)
        assert [d.name for d in directives] == ["ui/button", "ui/label"]
        assert [d.line for d in directives] == [2, 3]

    def test_markup_non_directives(self):
        """Unclosed or differently named elements are not directives."""
        content = '<Include src="a">\n<include src="b"/>\n<Include/>\n<Panel><Include src="c"/></Panel>\n'
        assert parse_includes(content, MARKUP) == []

    def test_unknown_grammar(self):
        with pytest.raises(ValueError):
            parse_includes("#include x", "yaml")


class TestCandidateNames:
    """Tests for file name candidates of a module name."""

    def test_name_without_extension(self):
        assert candidate_names("lib/util", SCRIPT) == ["lib/util.lua", "lib/util.ttslua"]

    def test_name_with_extension(self):
        assert candidate_names("lib/util.lua", SCRIPT) == ["lib/util.lua"]

    def test_dotted_name(self):
        """Dotted script names also map onto directories."""
        names = candidate_names("lib.util", SCRIPT)
        assert names[-2:] == ["lib/util.lua", "lib/util.ttslua"]

    def test_markup_has_no_dotted_form(self):
        assert candidate_names("ui.button", MARKUP) == ["ui.button.xml"]


class TestResolver:
    """Tests for Resolver.resolve()."""

    def test_first_root_wins(self, tmp_path):
        """A module present in several roots resolves to the first root's file."""
        dir_x = tmp_path / "x"
        dir_y = tmp_path / "y"
        expected = write(dir_x, "M.lua", "-- x")
        write(dir_y, "M.lua", "-- y")

        path = Resolver().resolve("M", [str(dir_x), str(dir_y)])
        assert path == os.path.normpath(expected)

    def test_falls_through_to_later_root(self, tmp_path):
        dir_x = tmp_path / "x"
        dir_x.mkdir()
        expected = write(tmp_path / "y", "lib/util.lua")

        path = Resolver().resolve("lib/util", [str(dir_x), str(tmp_path / "y")])
        assert path == os.path.normpath(expected)

    def test_dotted_and_alternate_extension(self, tmp_path):
        expected = write(tmp_path, "lib/util.ttslua")
        assert Resolver().resolve("lib.util", [str(tmp_path)]) == os.path.normpath(expected)

    def test_markup_resolution(self, tmp_path):
        expected = write(tmp_path, "ui/button.xml", "<Button/>")
        resolver = Resolver(MARKUP)
        assert resolver.resolve("ui/button", [str(tmp_path)]) == os.path.normpath(expected)

    def test_grammar_override(self, tmp_path):
        """One resolver serves both grammars."""
        expected = write(tmp_path, "ui/button.xml")
        resolver = Resolver(SCRIPT)
        assert resolver.resolve("ui/button", [str(tmp_path)], MARKUP) == os.path.normpath(expected)

    def test_not_found(self, tmp_path):
        """A missing module reports its name and the whole search list."""
        roots = [str(tmp_path / "a"), str(tmp_path / "b")]
        with pytest.raises(ModuleNotFoundError) as exc_info:
            Resolver().resolve("missing", roots)
        assert exc_info.value.module_name == "missing"
        assert exc_info.value.search_paths == roots
        assert "missing" in str(exc_info.value)

    def test_directories_are_not_modules(self, tmp_path):
        (tmp_path / "lib.lua").mkdir()
        with pytest.raises(ModuleNotFoundError):
            Resolver().resolve("lib", [str(tmp_path)])


class TestResolverCache:
    """Tests for the per-instance resolution cache."""

    def test_cache_dropped_when_file_removed(self, tmp_path):
        path = write(tmp_path, "util.lua")
        resolver = Resolver()
        resolver.resolve("util", [str(tmp_path)])

        os.remove(path)
        with pytest.raises(ModuleNotFoundError):
            resolver.resolve("util", [str(tmp_path)])

    def test_cache_revalidated_on_mtime_change(self, tmp_path):
        """A cached hit is reused until the cached file changes."""
        dir_x = tmp_path / "x"
        dir_x.mkdir()
        later = write(tmp_path / "y", "util.lua")
        roots = [str(dir_x), str(tmp_path / "y")]
        resolver = Resolver()
        assert resolver.resolve("util", roots) == os.path.normpath(later)

        earlier = write(dir_x, "util.lua")
        assert resolver.resolve("util", roots) == os.path.normpath(later)

        stat = os.stat(later)
        os.utime(later, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
        assert resolver.resolve("util", roots) == os.path.normpath(earlier)

    def test_cache_is_per_instance(self, tmp_path):
        dir_x = tmp_path / "x"
        dir_x.mkdir()
        write(tmp_path / "y", "util.lua")
        roots = [str(dir_x), str(tmp_path / "y")]
        Resolver().resolve("util", roots)

        earlier = write(dir_x, "util.lua")
        assert Resolver().resolve("util", roots) == os.path.normpath(earlier)

    def test_clear_cache(self, tmp_path):
        dir_x = tmp_path / "x"
        dir_x.mkdir()
        write(tmp_path / "y", "util.lua")
        roots = [str(dir_x), str(tmp_path / "y")]
        resolver = Resolver()
        resolver.resolve("util", roots)

        earlier = write(dir_x, "util.lua")
        resolver.clear_cache()
        assert resolver.resolve("util", roots) == os.path.normpath(earlier)

    def test_stale_entry_evicted_elsewhere(self, tmp_path):
        """A stale entry another thread already dropped does not break resolution."""
        path = write(tmp_path, "util.lua")

        class EvictedCache(dict):
            def get(self, key, default=None):
                return (path + ".old", 0)

        resolver = Resolver()
        resolver._cache = EvictedCache()
        assert resolver.resolve("util", [str(tmp_path)]) == os.path.normpath(path)

    def test_search_list_is_part_of_the_key(self, tmp_path):
        a = write(tmp_path / "a", "util.lua")
        b = write(tmp_path / "b", "util.lua")
        resolver = Resolver()
        assert resolver.resolve("util", [str(tmp_path / "a")]) == os.path.normpath(a)
        assert resolver.resolve("util", [str(tmp_path / "b")]) == os.path.normpath(b)


class TestRelativePath:
    """Tests for Resolver.relative_path()."""

    def test_relative_to_containing_root(self, tmp_path):
        path = write(tmp_path / "y", "lib/util.lua")
        roots = [str(tmp_path / "x"), str(tmp_path / "y")]
        assert Resolver().relative_path(path, roots) == "lib/util.lua"

    def test_outside_all_roots(self, tmp_path):
        path = write(tmp_path / "elsewhere", "main.lua")
        assert Resolver().relative_path(path, [str(tmp_path / "x")]) == "main.lua"
