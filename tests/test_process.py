import io
import logging
import os
from pathlib import Path

import pytest

from amalgamate.handling import AmalgamateError, ErrorHandling
from amalgamate.inlining import InliningFilter, parse_glob
from amalgamate.process import CyclicIncludeError, ErrorHandlingOpts, Processor
from amalgamate.resolve import IncludeResolver


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


def _source(tmp_path: Path, content: str, index: int = 0) -> Path:
    return _write(tmp_path / f"src{index}" / "src.cpp", content)


def _search_dir(tmp_path: Path, name: str, files: dict[str, str]) -> Path:
    directory = tmp_path / name
    directory.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        _write(directory / rel, content)
    return directory


def _amalgamate(sources, dirs=(), *, line_directives=False, opts=None, globs=()):
    out = io.StringIO()
    processor = Processor(
        out,
        IncludeResolver(dirs, dirs),
        line_directives,
        InliningFilter([parse_glob(g) for g in globs], [parse_glob(g) for g in globs]),
        opts or ErrorHandlingOpts(),
    )
    for source in sources:
        processor.process(source)
    return out.getvalue()


def _cycle_setup(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "#include <b.hpp>", "b.hpp": "#include <a.hpp>"})
    return src, d


def test_cyclic_include_errors_by_default(tmp_path):
    src, d = _cycle_setup(tmp_path)
    with pytest.raises(CyclicIncludeError) as info:
        _amalgamate([src], [d])
    assert info.value.cycle == [(d / "b.hpp").resolve(), (d / "a.hpp").resolve()]


def test_cyclic_include_error_is_amalgamate_error(tmp_path):
    src, d = _cycle_setup(tmp_path)
    opts = ErrorHandlingOpts(cyclic_include=ErrorHandling.ERROR)
    with pytest.raises(AmalgamateError, match="Cyclic include detected"):
        _amalgamate([src], [d], opts=opts)


def test_cyclic_include_warn(tmp_path, caplog):
    src, d = _cycle_setup(tmp_path)
    opts = ErrorHandlingOpts(cyclic_include=ErrorHandling.WARN)
    with caplog.at_level(logging.WARNING):
        output = _amalgamate([src], [d], opts=opts)
    assert output == ""
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_cyclic_include_ignore(tmp_path, caplog):
    src, d = _cycle_setup(tmp_path)
    opts = ErrorHandlingOpts(cyclic_include=ErrorHandling.IGNORE)
    with caplog.at_level(logging.WARNING):
        output = _amalgamate([src], [d], opts=opts)
    assert output == ""
    assert not any(r.levelno >= logging.WARNING for r in caplog.records)


def test_cyclic_include_back_to_source_file(tmp_path):
    d = _search_dir(tmp_path, "inc", {"a.hpp": "#include <a.hpp>", "b.hpp": "#include <b.hpp>"})
    with pytest.raises(CyclicIncludeError) as info:
        _amalgamate([d / "a.hpp"], [d])
    assert info.value.cycle == [(d / "a.hpp").resolve()]


def test_cyclic_include_error_message():
    error = CyclicIncludeError([Path("x/b.hpp"), Path("x/a.hpp")])
    assert str(error) == f"Cyclic include detected:\n\t{Path('x/b.hpp')}\n\t{Path('x/a.hpp')}\n"


def test_already_included_source_file(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "arst"})
    assert _amalgamate([src, d / "a.hpp"], [d]) == "arst"


def test_include_headers_at_most_once(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>\n#include <b.hpp>\n")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "#include <b.hpp>", "b.hpp": "arst\n"})
    assert _amalgamate([src], [d]) == "arst\n"


def test_file_identity_considers_symlinks(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>\n#include <b.hpp>\n")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "arst\n"})
    os.symlink(d / "a.hpp", d / "b.hpp")
    assert _amalgamate([src], [d]) == "arst\n"


def test_weird_include_statements(tmp_path):
    src = _source(tmp_path, "# \t include \t <a.hpp> \t ")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "arst"})
    assert _amalgamate([src], [d]) == "arst"


def test_mismatched_delimiters_are_left_alone(tmp_path):
    content = '#include "a.hpp>\n'
    src = _source(tmp_path, content)
    d = _search_dir(tmp_path, "inc", {"a.hpp": "arst"})
    opts = ErrorHandlingOpts(
        unresolvable_quote_include=ErrorHandling.ERROR,
        unresolvable_system_include=ErrorHandling.ERROR,
    )
    assert _amalgamate([src], [d], opts=opts) == content


def test_line_directives(tmp_path):
    src = _source(tmp_path, "arst\n#include <a.hpp>\n\narst\n#include <b.hpp>\narst\n")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "#include <b.hpp>\n", "b.hpp": "qwfp\n"})
    src_path = str(src.resolve()).replace("\\", "/")
    b_path = str((d / "b.hpp").resolve()).replace("\\", "/")
    expected = (
        f'#line 1 "{src_path}"\n'
        "arst\n"
        f'#line 1 "{b_path}"\n'
        "qwfp\n"
        f'#line 3 "{src_path}"\n'
        "\n"
        "arst\n"
        f'#line 6 "{src_path}"\n'
        "arst\n"
    )
    assert _amalgamate([src], [d], line_directives=True) == expected


def test_pragma_once_removal(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>\n#include <b.hpp>\n")
    d = _search_dir(
        tmp_path, "inc", {"a.hpp": "#pragma once\n", "b.hpp": "# \tpragma\t  once  \t\n"}
    )
    assert _amalgamate([src], [d]) == ""


def test_multiple_source_files(tmp_path):
    sources = [_source(tmp_path, text, i) for i, text in enumerate("abc")]
    assert _amalgamate(sources) == "abc"


def test_quote_include_relative_to_current_file(tmp_path):
    src = _source(tmp_path, '#include "local.hpp"\n')
    _write(src.parent / "local.hpp", "// local\n")
    assert _amalgamate([src]) == "// local\n"


def test_filtered_include_is_kept(tmp_path):
    src = _source(tmp_path, "#include <a.hpp>\n#include <b.hpp>\n")
    d = _search_dir(tmp_path, "inc", {"a.hpp": "// a.hpp\n", "b.hpp": "// b.hpp\n"})
    assert _amalgamate([src], [d], globs=["**/b.hpp"]) == "// a.hpp\n#include <b.hpp>\n"


@pytest.mark.parametrize("include", ["#include <a>", '#include "a"'])
def test_unresolvable_include_ignored_by_default(tmp_path, include):
    src = _source(tmp_path, include)
    assert _amalgamate([src]) == include


@pytest.mark.parametrize(
    "include, opts",
    [
        ("#include <a>", ErrorHandlingOpts(unresolvable_system_include=ErrorHandling.ERROR)),
        ('#include "a"', ErrorHandlingOpts(unresolvable_quote_include=ErrorHandling.ERROR)),
    ],
)
def test_unresolvable_include_error(tmp_path, include, opts):
    src = _source(tmp_path, include)
    with pytest.raises(AmalgamateError, match="Could not resolve"):
        _amalgamate([src], opts=opts)


def test_unresolvable_include_only_relevant_kind_applies(tmp_path):
    src = _source(tmp_path, "#include <a>")
    opts = ErrorHandlingOpts(unresolvable_quote_include=ErrorHandling.ERROR)
    assert _amalgamate([src], opts=opts) == "#include <a>"


def test_unresolvable_include_warn(tmp_path, caplog):
    src = _source(tmp_path, '#include "a"')
    opts = ErrorHandlingOpts(unresolvable_quote_include=ErrorHandling.WARN)
    with caplog.at_level(logging.WARNING):
        output = _amalgamate([src], opts=opts)
    assert output == '#include "a"'
    assert any("Could not resolve" in r.getMessage() for r in caplog.records)


def test_missing_source_file(tmp_path):
    with pytest.raises(AmalgamateError, match="Failed to canonicalize source file path"):
        _amalgamate([tmp_path / "missing.cpp"])


def test_invalid_utf8_fails(tmp_path):
    src = tmp_path / "bad.cpp"
    src.write_bytes(b"\xff\xfe\n")
    with pytest.raises(AmalgamateError, match="Failed to read from"):
        _amalgamate([src])