"""Tests for doc comment sanitization.

This module tests sanitize_comment, which keeps rustdoc from compiling
fragments copied out of protobuf comments, and sanitize_unit, which applies
it to the comments of a whole generated unit.
"""

import pytest

from protonest.codegen.comments import (
    comment_disabled,
    sanitize_comment,
    sanitize_unit,
)
from protonest.tests.fixtures import FENCED_SOURCE, MESSAGE_SOURCE, make_unit


def fence_lines(text: str) -> list[str]:
    """Return the lines of a comment that are fence markers."""
    return [line.strip() for line in text.split('\n') if line.strip().startswith('```')]


SAMPLES = [
    ' Plain prose only.',
    ' Example:\n ```\n { "id": 1 }\n ```',
    ' ```rust\n let x = foo();\n ```',
    ' ```json\n {"a": [1, 2]}\n ```',
    ' ```\n fn main() {\n     println!("hi");\n }\n ```',
    ' Unterminated:\n ```\n let x = 1;',
    ' Intro.\n\n     indented code\n\n     more code\n\n Outro.',
    ' ```ignore\n not rust\n ```',
    ' ~~~\n tilde fenced\n ~~~',
    ' Starts with code?\n\n     ```\n     nested backticks\n     ```',
    ' ```json\n {}\n ```\n     foo();',
    ' # Example\n     foo();',
    '```\nx\n        ```\n```',
]


class TestFencedBlocks:
    """Tests for fenced code blocks."""

    def test_unlabeled_fragment_is_retagged(self):
        """Test that an unlabeled non-runnable block becomes a text block."""
        result = sanitize_comment(' Example:\n ```\n { "id": 1 }\n ```')
        assert result == ' Example:\n ```text\n { "id": 1 }\n ```'

    def test_rust_fragment_is_retagged(self):
        """Test that a rust-labeled fragment without main is retagged."""
        result = sanitize_comment(' ```rust\n let x = foo();\n ```')
        assert result == ' ```text\n let x = foo();\n ```'

    def test_rustdoc_attributes_still_count_as_rust(self):
        """Test that no_run blocks are still treated as compiled code."""
        result = sanitize_comment('```rust,no_run\nlet x = foo();\n```')
        assert result == '```text\nlet x = foo();\n```'

    def test_runnable_program_is_kept(self):
        """Test that a complete program with main stays a doctest."""
        text = ' ```\n fn main() {\n     println!("hi");\n }\n ```'
        assert sanitize_comment(text) == text

    def test_program_with_placeholder_is_retagged(self):
        """Test that ellipsis placeholders make a block non-runnable."""
        text = '```\nfn main() {\n    ...\n}\n```'
        assert sanitize_comment(text).startswith('```text\n')

    def test_unbalanced_program_is_retagged(self):
        """Test that unbalanced brackets make a block non-runnable."""
        text = '```\nfn main() {\n```'
        assert sanitize_comment(text).startswith('```text\n')

    @pytest.mark.parametrize('info', ['json', 'ignore', 'text', 'rust,ignore', 'proto'])
    def test_other_languages_are_untouched(self, info):
        """Test that blocks rustdoc does not compile are left as they are."""
        text = f'```{info}\nwhatever\n```'
        assert sanitize_comment(text) == text

    def test_tilde_fence(self):
        """Test that tilde fences are recognized."""
        result = sanitize_comment('~~~\nlet a = 1;\n~~~')
        assert result == '~~~text\nlet a = 1;\n~~~'

    def test_multiline_block_with_blank_lines_is_retagged_once(self):
        """Test that a block with blank lines is retagged as one unit."""
        text = '```\nlet a = 1;\n\n    let b = 2;\n\nlet c = 3;\n```'
        result = sanitize_comment(text)
        assert result == '```text\nlet a = 1;\n\n    let b = 2;\n\nlet c = 3;\n```'
        assert fence_lines(result) == ['```text', '```']

    def test_unterminated_fence_is_closed(self):
        """Test that a fence left open is closed at the end of the comment."""
        result = sanitize_comment(' Unterminated:\n ```\n let x = 1;')
        assert result == ' Unterminated:\n ```text\n let x = 1;\n ```'

    def test_first_open_first_close_pairing(self):
        """Test that fences pair in order rather than nesting."""
        text = '```\na\n```\nprose\n```\nb\n```'
        result = sanitize_comment(text)
        assert result == '```text\na\n```\nprose\n```text\nb\n```'

    def test_longer_closing_fence(self):
        """Test that a closing fence may be longer than the opener."""
        result = sanitize_comment('```\nx\n`````')
        assert result == '```text\nx\n`````'

    def test_deeply_indented_fence_does_not_close(self):
        """Test that a fence line four columns deeper is block content."""
        result = sanitize_comment('```\nx\n        ```\n```')
        assert result == '```text\nx\n        ```\n```'
        assert fence_lines(result) == ['```text', '```', '```']


class TestIndentedCode:
    """Tests for Markdown indented code blocks."""

    def test_indented_block_is_wrapped(self):
        """Test that an indented block after a blank line is fenced."""
        text = ' Intro.\n\n     indented code\n\n     more code\n\n Outro.'
        result = sanitize_comment(text)
        assert result == (
            ' Intro.\n\n ```text\n     indented code\n\n     more code\n ```\n\n Outro.'
        )

    def test_indented_block_at_start_is_wrapped(self):
        """Test that an indented block at the start of a comment is fenced."""
        result = sanitize_comment('Title\n\n    code')
        assert result == 'Title\n\n```text\n    code\n```'

    def test_indented_block_after_closing_fence(self):
        """Test that a closing fence leaves no paragraph for code to continue."""
        result = sanitize_comment(' ```json\n {}\n ```\n     foo();')
        assert result == ' ```json\n {}\n ```\n ```text\n     foo();\n ```'

    def test_indented_block_after_heading(self):
        """Test that code directly under an ATX heading is fenced."""
        result = sanitize_comment(' # Example\n     foo();')
        assert result == ' # Example\n ```text\n     foo();\n ```'

    def test_indented_block_after_thematic_break(self):
        result = sanitize_comment('Intro\n\n---\n    foo();')
        assert result == 'Intro\n\n---\n```text\n    foo();\n```'

    def test_indented_block_after_setext_heading(self):
        result = sanitize_comment('Example\n=======\n    foo();')
        assert result == 'Example\n=======\n```text\n    foo();\n```'

    def test_hash_without_space_is_prose(self):
        """Test that '#tag' is paragraph text, so indented lines continue it."""
        text = '#tag\n    continues'
        assert sanitize_comment(text) == text

    def test_paragraph_continuation_is_not_code(self):
        """Test that indented lines continuing a paragraph are left alone."""
        text = ' A sentence that\n     continues here.'
        assert sanitize_comment(text) == text

    def test_common_indentation_is_ignored(self):
        """Test that uniform indentation of the whole comment is not code."""
        text = '     all lines\n     share this indent'
        assert sanitize_comment(text) == text

    def test_tabs_count_as_indentation(self):
        """Test that a tab-indented line is treated as code."""
        result = sanitize_comment('Intro\n\n\tcode')
        assert result == 'Intro\n\n```text\n\tcode\n```'

    def test_wrapping_fence_is_longer_than_inner_backticks(self):
        """Test that wrapped code containing backticks keeps balanced fences."""
        text = ' Starts with code?\n\n     ```\n     nested backticks\n     ```'
        result = sanitize_comment(text)
        assert result.split('\n')[2] == ' ````text'
        assert result.split('\n')[-1] == ' ````'


class TestSanitizeProperties:
    """Tests for properties that hold for every comment."""

    @pytest.mark.parametrize('text', SAMPLES)
    def test_idempotent(self, text):
        """Test that sanitizing twice is the same as sanitizing once."""
        once = sanitize_comment(text)
        assert sanitize_comment(once) == once

    @pytest.mark.parametrize('text', SAMPLES)
    def test_fences_balanced(self, text):
        """Test that the output never has an unmatched fence."""
        opened = None
        for line in sanitize_comment(text).split('\n'):
            stripped = line.strip()
            # deeper lines are code content, not fences
            if not stripped or stripped[0] not in '`~' or len(line) - len(line.lstrip()) >= 5:
                continue
            char = stripped[0]
            run = len(stripped) - len(stripped.lstrip(char))
            if run < 3:
                continue
            if opened is None:
                opened = (char, run)
            elif char == opened[0] and run >= opened[1] and not stripped[run:]:
                opened = None
        assert opened is None

    def test_prose_untouched(self):
        """Test that text without code is returned unchanged."""
        text = ' Just words.\n\n More words, with `inline code`.'
        assert sanitize_comment(text) == text

    def test_empty_comment(self):
        """Test that an empty comment is returned unchanged."""
        assert sanitize_comment('') == ''


class TestCommentDisabled:
    """Tests for disable_comments path matching."""

    def test_dot_matches_everything(self):
        assert comment_disabled('pkg.Message.field', ['.'])

    def test_anchored_path_matches_nested(self):
        assert comment_disabled('pkg.Message.field', ['.pkg.Message'])
        assert comment_disabled('pkg.Message', ['.pkg.Message'])

    def test_anchored_path_respects_segments(self):
        assert not comment_disabled('pkg.MessageTwo', ['.pkg.Message'])

    def test_unanchored_suffix(self):
        assert comment_disabled('pkg.Message.field', ['Message.field'])
        assert comment_disabled('pkg.Message.field', ['field'])
        assert not comment_disabled('pkg.Message.other_field', ['field'])

    def test_no_patterns(self):
        assert not comment_disabled('pkg.Message', [])


class TestSanitizeUnit:
    """Tests for sanitizing the comments of a generated unit."""

    def test_fenced_comment_rewritten_in_source(self):
        """Test that the retagged fence lands in the unit source."""
        unit = make_unit('pkg', FENCED_SOURCE)
        result = sanitize_unit(unit)

        lines = result.source_text.split('\n')
        assert lines[1] == '/// ```text'
        assert lines[3] == '/// ```'
        assert lines[5] == 'pub struct Payload {'

    def test_indented_comment_wrapped_in_source(self):
        """Test that indented code inside a field comment is fenced."""
        unit = make_unit('my.pkg', MESSAGE_SOURCE)
        result = sanitize_unit(unit)

        assert '    /// ```text\n    ///     let x = 5;\n    /// ```\n' in result.source_text
        assert result.source_text.count('\n') == MESSAGE_SOURCE.count('\n') + 2

    def test_unchanged_comments_keep_exact_bytes(self):
        """Test that a unit without code in comments is unchanged."""
        source = '///no space after marker\npub struct A {}\n'
        unit = make_unit('pkg', source)
        assert sanitize_unit(unit).source_text == source

    def test_comment_spans_updated(self):
        """Test that comment spans point at the rewritten lines."""
        unit = make_unit('my.pkg', MESSAGE_SOURCE)
        result = sanitize_unit(unit)
        lines = result.source_text.split('\n')

        for comment in result.raw_comments:
            span = lines[comment.start : comment.end]
            assert all(line.lstrip().startswith('///') for line in span)

    def test_disable_all_comments(self):
        """Test that '.' removes every doc comment."""
        unit = make_unit('my.pkg', MESSAGE_SOURCE)
        result = sanitize_unit(unit, frozenset({'.'}))

        assert '///' not in result.source_text
        assert result.raw_comments == ()
        assert 'pub struct TestMessage {' in result.source_text

    def test_disable_single_field(self):
        """Test that a field path removes only that field's comment."""
        unit = make_unit('my.pkg', MESSAGE_SOURCE)
        result = sanitize_unit(unit, frozenset({'.my.pkg.TestMessage.field_two'}))

        assert 'Plain prose.' not in result.source_text
        assert 'A test message.' in result.source_text
        assert 'The first field.' in result.source_text

    def test_sanitize_unit_idempotent(self):
        """Test that sanitizing a unit twice changes nothing the second time."""
        unit = make_unit('my.pkg', MESSAGE_SOURCE)
        once = sanitize_unit(unit)
        assert sanitize_unit(once).source_text == once.source_text

    def test_original_unit_untouched(self):
        """Test that the input unit is not mutated."""
        unit = make_unit('pkg', FENCED_SOURCE)
        sanitize_unit(unit)
        assert unit.source_text == FENCED_SOURCE
