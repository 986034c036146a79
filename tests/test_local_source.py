from pathlib import Path

import pytest

from a11y_scanner.models import ScanSettings, SourceSettings
from a11y_scanner.sources import build_source
from a11y_scanner.sources.local import LocalSource, is_ignored


def _tree(root: Path) -> None:
    (root / "src").mkdir()
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "src" / "index.html").write_text("<p>Hi</p>", encoding="utf-8")
    (root / "src" / "site.css").write_text("p { color: #000; }", encoding="utf-8")
    (root / "src" / "App.jsx").write_text("export default () => <main />;", encoding="utf-8")
    (root / "src" / "vendor.min.js").write_text("var a=1;", encoding="utf-8")
    (root / "src" / "readme.md").write_text("# docs", encoding="utf-8")
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = 1;", encoding="utf-8")


def test_local_source_lists_recognized_files(tmp_path: Path):
    _tree(tmp_path)
    source = build_source(SourceSettings(type="local", name="web", root_dir=str(tmp_path)))

    files = source.list_files()

    assert isinstance(source, LocalSource)
    assert [item.path for item in files] == ["src/App.jsx", "src/index.html", "src/site.css"]
    assert files[1].content == "<p>Hi</p>"


def test_local_source_honors_size_and_count_limits(tmp_path: Path):
    _tree(tmp_path)
    (tmp_path / "src" / "big.css").write_text("a{}" * 200, encoding="utf-8")

    limited = LocalSource(
        SourceSettings(type="local", name="web", root_dir=str(tmp_path)),
        ScanSettings(max_file_size_bytes=100, max_files=2),
    )

    paths = [item.path for item in limited.list_files()]

    assert "src/big.css" not in paths
    assert len(paths) == 2


def test_ignore_patterns():
    patterns = ("node_modules/**", "*.min.js")

    assert is_ignored("node_modules/react/index.js", patterns)
    assert is_ignored("packages/ui/node_modules/x.js", patterns)
    assert is_ignored("static/app.min.js", patterns)
    assert not is_ignored("src/app.js", patterns)


def test_local_source_requires_existing_root(tmp_path: Path):
    with pytest.raises(ValueError):
        LocalSource(SourceSettings(type="local", name="web"))
    with pytest.raises(RuntimeError):
        LocalSource(SourceSettings(type="local", name="web", root_dir=str(tmp_path / "missing"))).list_files()


def test_unknown_source_type():
    with pytest.raises(ValueError, match="Unsupported source type"):
        build_source(SourceSettings(type="svn", name="old"))
