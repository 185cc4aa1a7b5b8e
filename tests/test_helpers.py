from pathlib import Path

from tex_trans_lib.helpers import (add_ctex_support, extract_translated_from_response, get_relative_path,
                                   has_documentclass, is_tex_file, safe_identifier)


def test_ctex_goes_after_last_usepackage():
    src = "\\documentclass{article}\n\\usepackage{amsmath}\n\\usepackage[utf8]{inputenc}\n\\begin{document}\n"
    assert add_ctex_support(src) == (
        "\\documentclass{article}\n\\usepackage{amsmath}\n\\usepackage[utf8]{inputenc}\n"
        "\\usepackage[UTF8]{ctex}\n\\begin{document}\n"
    )


def test_ctex_without_packages():
    src = "\\documentclass[11pt]{article}\n\\begin{document}\n"
    assert add_ctex_support(src) == "\\documentclass[11pt]{article}\n\\usepackage[UTF8]{ctex}\n\\begin{document}\n"


def test_ctex_is_not_added_twice():
    src = "\\documentclass{article}\n\\usepackage[UTF8]{ctex}\n"
    assert add_ctex_support(src) == src
    assert add_ctex_support("\\documentclass{ctexart}\n") == "\\documentclass{ctexart}\n"


def test_ctex_needs_documentclass():
    src = "\\section{Intro}\nText.\n"
    assert add_ctex_support(src) == src


def test_documentclass_detection():
    assert has_documentclass("% main\n\\documentclass{book}\n")
    assert not has_documentclass("% \\documentclass{book}\n")


def test_paths():
    root = Path("/proj")
    assert get_relative_path(Path("/proj/chapters/intro.tex"), root) == Path("chapters/intro.tex")
    assert get_relative_path(Path("/proj/main.tex"), Path("/proj/main.tex")) == Path("main.tex")
    assert safe_identifier(Path("chapters/intro.tex")) == "chapters_intro.tex"
    assert is_tex_file(Path("a/b.TEX"))
    assert not is_tex_file(Path("a/b.png"))


def test_extract_multiple_outputs():
    assert extract_translated_from_response("<output>\nA\n</output> noise <output>B</output>") == "AB"
    assert extract_translated_from_response("<output>\nunterminated") == "unterminated"
