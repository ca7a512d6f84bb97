"""Tests for composer writes and attachment confirmation."""
import pytest

from codelink.common.models import FileRecord
from codelink.core.errors import SurfaceUnavailable
from codelink.core.live_context.formatting import format_file_content
from codelink.core.live_context.surface import (
    AttachmentDelivery,
    InjectionSurface,
    InlineDelivery,
    encode_markup,
)
from codelink.core.live_context.tracker import Channel

from fakes import FakeDocument, FakeSurface


def record(name="big.py", content="x = 1"):
    return FileRecord(name=name, path=f"src/{name}", extension=".py", content=content)


class TestEncodeMarkup:
    def test_prose_is_escaped(self):
        assert encode_markup("a < b & c\nnext") == "a &lt; b &amp; c<br>next"

    def test_leading_spaces_kept(self):
        assert encode_markup("    indented") == "&nbsp;&nbsp;&nbsp;&nbsp;indented"

    def test_fenced_code_becomes_block(self):
        markup = encode_markup("before\n```python\nif a < b:\n    pass\n```after")
        assert markup.startswith("before<br>")
        assert "font-family:monospace" in markup
        assert "if a &lt; b:\n    pass\n</div>" in markup
        assert markup.endswith("</div>after")


class TestSetContent:
    @pytest.mark.asyncio
    async def test_replace_plain(self, document, surface):
        document.surface.value = "old"
        assert await surface.set_content("new text")
        assert document.surface.value == "new text"
        assert document.surface.inputs == 1

    @pytest.mark.asyncio
    async def test_append_strips_markers_and_moves_caret(self, document, surface):
        document.surface.value = "question"
        block = format_file_content("app.js", ".js", "let a;", 1)
        assert await surface.set_content(f"\n{block}\n", append=True)
        value = document.surface.value
        assert value.startswith("question\n\n```javascript\n// File: app.js\n")
        assert "file-content" not in value
        assert document.surface.cursor == len(value)

    @pytest.mark.asyncio
    async def test_append_skips_files_already_present(self, document, surface):
        block = format_file_content("app.js", ".js", "let a;", 1)
        await surface.set_content(block, append=True)
        before = document.surface.value
        inputs = document.surface.inputs

        assert await surface.set_content(format_file_content("app.js", ".js", "let a;", 2), append=True)
        assert document.surface.value == before
        assert document.surface.inputs == inputs

    @pytest.mark.asyncio
    async def test_append_with_one_new_file_is_written(self, document, surface):
        await surface.set_content(format_file_content("a.py", ".py", "1", 1), append=True)
        batch = format_file_content("a.py", ".py", "1", 2) + format_file_content("b.py", ".py", "2", 2)
        await surface.set_content(batch, append=True)
        assert "// File: b.py" in document.surface.value

    @pytest.mark.asyncio
    async def test_rich_surface_gets_markup(self, settings):
        document = FakeDocument(FakeSurface(rich=True))
        surface = InjectionSurface(document, settings)
        assert await surface.set_content("line one\nline <two>")
        assert document.surface.value == "line one<br>line &lt;two&gt;"

    @pytest.mark.asyncio
    async def test_missing_surface_returns_false(self, settings):
        document = FakeDocument()
        document.swap_surface(None)
        surface = InjectionSurface(document, settings)
        assert not await surface.set_content("text")
        with pytest.raises(SurfaceUnavailable):
            await surface.acquire()

    @pytest.mark.asyncio
    async def test_write_failure_drops_reference(self, document, surface):
        async def broken(text):
            raise RuntimeError("detached")

        document.surface.set_text = broken
        assert not await surface.set_content("text")
        assert surface.current is None


class TestReplaceSpan:
    @pytest.mark.asyncio
    async def test_replaces_and_positions_caret(self, document, surface):
        document.surface.value = "look at @ap please"
        assert await surface.replace_span(8, 11, "app.js")
        assert document.surface.value == "look at app.js please"
        assert document.surface.cursor == 14
        assert document.surface.inputs == 1

    @pytest.mark.asyncio
    async def test_rich_caret_lands_after_code_block(self, settings):
        document = FakeDocument(FakeSurface(rich=True, text="hi @ap tail"))
        surface = InjectionSurface(document, settings)
        block = format_file_content("app.js", ".js", "console.log('app');")

        assert await surface.replace_span(3, 6, block)

        text = await document.surface.get_text()
        assert text == "hi // File: app.js\nconsole.log('app');\n tail"
        assert "```" not in text
        assert document.surface.cursor == len(text) - len(" tail")
        assert document.surface.splices == 1

    @pytest.mark.asyncio
    async def test_rich_splice_keeps_markup_outside_span(self, settings):
        fake = FakeSurface(rich=True)
        fake.value = '<div style="white-space:pre;">x = 1\n</div>see @ma'
        document = FakeDocument(fake)
        surface = InjectionSurface(document, settings)
        spliced = []

        async def splice(start, end, markup):
            spliced.append((start, end, markup))
            return start + 7

        fake.splice_markup = splice
        assert await surface.replace_span(10, 13, "main.py")

        assert spliced == [(10, 13, "main.py")]
        assert fake.value.startswith('<div style="white-space:pre;">')
        assert fake.cursor == 17


class TestRefresh:
    @pytest.mark.asyncio
    async def test_detects_swapped_surface(self, document, surface):
        changed, _ = await surface.refresh()
        assert changed
        changed, _ = await surface.refresh()
        assert not changed
        document.swap_surface(FakeSurface(identity="2"))
        changed, current = await surface.refresh()
        assert changed and current.identity == "2"


class TestAttachment:
    @pytest.mark.asyncio
    async def test_confirmed_by_attachment_card(self, settings):
        document = FakeDocument(accept_attachments=True)
        surface = InjectionSurface(document, settings)
        assert await surface.attempt_attachment(record())
        assert document.surface.pastes == [("big.py", "x = 1")]

    @pytest.mark.asyncio
    async def test_confirmed_by_composer_text(self, document, surface):
        document.surface.on_paste = lambda name: setattr(document, "composer", f"{name} Document")
        assert await surface.attempt_attachment(record())

    @pytest.mark.asyncio
    async def test_confirmed_by_changed_snapshot(self, document, surface):
        document.surface.on_paste = lambda name: setattr(document, "page", f"<main>{name}</main>")
        assert await surface.attempt_attachment(record())

    @pytest.mark.asyncio
    async def test_unchanged_snapshot_with_name_does_not_confirm(self, document, surface):
        document.page = "<main>big.py</main>"
        assert not await surface.attempt_attachment(record())

    @pytest.mark.asyncio
    async def test_unconfirmed_returns_false(self, document, surface):
        assert not await surface.attempt_attachment(record())
        assert len(document.surface.pastes) == 1

    @pytest.mark.asyncio
    async def test_already_attached_skips_paste(self, document, surface):
        document.attachments.append("big.py")
        assert await surface.attempt_attachment(record())
        assert document.surface.pastes == []

    @pytest.mark.asyncio
    async def test_paste_error_returns_false(self, document, surface):
        async def broken(name, content):
            raise RuntimeError("no clipboard")

        document.surface.paste_file = broken
        assert not await surface.attempt_attachment(record())


class TestStrategies:
    def test_channels(self, surface):
        assert AttachmentDelivery(surface).channel is Channel.ATTACHMENT
        assert InlineDelivery(surface).channel is Channel.CONTENT

    @pytest.mark.asyncio
    async def test_inline_appends_block(self, document, surface):
        assert await InlineDelivery(surface).deliver(record())
        assert "```python\n// File: big.py\nx = 1\n```" in document.surface.value
