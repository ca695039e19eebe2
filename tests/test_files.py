"""
Tests for filename sanitization and MIME type lookup.

Sanitization properties use Hypothesis.
"""

import re

import pytest
from hypothesis import given, settings, strategies as st

from app.utils.files import clean_filename, detect_mime_type, DEFAULT_MIME_TYPE

SAFE_NAME = re.compile(r"^[A-Za-z0-9_.\-]{0,180}$")


@given(st.text(max_size=400))
@settings(max_examples=200)
def test_clean_filename_output_is_safe(name):
    assert SAFE_NAME.match(clean_filename(name))


@given(st.text(max_size=400))
@settings(max_examples=200)
def test_clean_filename_is_idempotent(name):
    once = clean_filename(name)
    assert clean_filename(once) == once


@pytest.mark.parametrize("raw,expected", [
    ("notes.txt", "notes.txt"),
    ("  my   report final.pdf ", "my_report_final.pdf"),
    ("résumé (v2).docx", "r_sum___v2_.docx"),
    ("a/b\\c.md", "a_b_c.md"),
    ("tab\tand\nnewline.txt", "tab_and_newline.txt"),
    (None, "file"),
    ("", "file"),
    ("   ", "file"),
])
def test_clean_filename_examples(raw, expected):
    assert clean_filename(raw) == expected


def test_clean_filename_truncates():
    name = "x" * 300 + ".pdf"
    cleaned = clean_filename(name)
    assert len(cleaned) == 180
    assert cleaned == "x" * 180


@pytest.mark.parametrize("filename,expected", [
    ("report.pdf", "application/pdf"),
    ("REPORT.PDF", "application/pdf"),
    ("notes.txt", "text/plain"),
    ("readme.md", "text/markdown"),
    ("data.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ("photo.jpeg", "image/jpeg"),
    ("script.ts", "application/typescript"),
    ("bundle.tar.zip", "application/zip"),
])
def test_detect_mime_type_known(filename, expected):
    assert detect_mime_type(filename) == expected


@pytest.mark.parametrize("filename", ["archive.rar", "Makefile", "", None, "trailingdot."])
def test_detect_mime_type_fallback(filename):
    assert detect_mime_type(filename) == DEFAULT_MIME_TYPE


def test_detect_mime_type_custom_fallback():
    assert detect_mime_type("blob.bin", fallback="application/x-custom") == "application/x-custom"


def test_clean_filename_default_ignores_small_limit():
    assert clean_filename("   ", max_length=2) == "file"
    assert clean_filename("abc", max_length=2) == "ab"
