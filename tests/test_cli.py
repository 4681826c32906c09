import asyncio
from dataclasses import replace
from pathlib import Path

from bloom.app import BloomApp
from bloom.config.settings import global_settings, update_global_settings
from bloom.errors import InvalidInput
from bloom.main import build_parser, export_command, main
from bloom.model.doc_tree import Doc, node_from_dict
from bloom.model.documents_model import Document
from bloom.prefs.kv_store import MemoryKeyValueStore


def _content() -> Doc:
    content = node_from_dict(
        {
            "type": "doc",
            "content": [
                {"type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Notes"}]},
                {"type": "paragraph", "content": [{"type": "text", "text": "Three little words"}]},
            ],
        }
    )
    assert isinstance(content, Doc)
    return content


def _seeded_app(tmp_path: Path) -> BloomApp:
    settings = replace(global_settings(), storage_dir=tmp_path / "docs")
    app = BloomApp.create(settings, prefs=MemoryKeyValueStore())

    async def seed():
        await app.store.save("notes", Document(content=_content(), title="My Notes!", tags=["ideas"]))

    asyncio.run(seed())
    return app


def test_parser():
    args = build_parser().parse_args(["list", "--tag", "ideas"])
    assert args.command == "list" and args.tag == "ideas" and args.search == ""

    args = build_parser().parse_args(["export", "abc", "--format", "html"])
    assert args.doc_id == "abc" and args.extension == "html" and args.output is None


def test_export_to_directory_and_file(tmp_path: Path):
    app = _seeded_app(tmp_path)
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    asyncio.run(export_command(app, "notes", "md", out_dir))
    assert (out_dir / "My-Notes.md").read_text() == "# Notes\n\nThree little words"

    asyncio.run(export_command(app, "notes", "md", out_dir / "notes.html"))
    assert "<h1>Notes</h1>" in (out_dir / "notes.html").read_text()


def test_export_errors(tmp_path: Path):
    app = _seeded_app(tmp_path)

    for doc_id, extension in [("missing", "md"), ("notes", "pdf")]:
        try:
            asyncio.run(export_command(app, doc_id, extension, None))
            assert False
        except InvalidInput:
            pass


def test_main_commands(tmp_path: Path, capsys):
    _seeded_app(tmp_path)

    settings = global_settings()
    saved = (settings.storage_dir, settings.prefs_file)
    with update_global_settings() as settings:
        settings.storage_dir = tmp_path / "docs"
        settings.prefs_file = tmp_path / "prefs.yml"
    try:
        assert main(["export", "notes"]) == 0
        assert capsys.readouterr().out == "# Notes\n\nThree little words\n"

        assert main(["list", "--tag", "ideas"]) == 0
        assert "My Notes!" in capsys.readouterr().out

        assert main(["list", "--search", "nothing like it"]) == 0
        assert "No documents." in capsys.readouterr().out

        assert main(["show", "missing"]) == 1
        assert (tmp_path / "prefs.yml").exists()
    finally:
        with update_global_settings() as settings:
            settings.storage_dir, settings.prefs_file = saved


def test_copy_to_system_clipboard(tmp_path: Path, monkeypatch):
    import pyperclip

    from bloom.main import copy_command

    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)

    app = _seeded_app(tmp_path)
    asyncio.run(copy_command(app, "notes"))
    assert copied == ["# Notes\n\nThree little words"]
