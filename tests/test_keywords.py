# tests/test_keywords.py
import pytest

from personalizer.keywords import article_text, extract_keywords
from personalizer.models import Article
from personalizer.text import estimate_reading_seconds, estimate_reading_time, strip_html, tokenize


def test_tokenize_drops_markup_short_tokens_and_stop_words():
    toks = tokenize("<p>The <b>Rust</b> compiler is on it, an ML win!</p>")
    assert toks == ["rust", "compiler", "win"]


def test_strip_html_passes_plain_text_through():
    assert strip_html("a  <  b and   c") == "a < b and c"
    assert strip_html("") == ""
    assert strip_html("<script>x()</script><p>hello</p>") == "hello"


def test_empty_or_stopword_text_yields_no_keywords():
    assert extract_keywords("") == {}
    assert extract_keywords("the and of it is to") == {}
    assert extract_keywords("<div></div>") == {}


def test_frequency_bands():
    # alpha x1 (neutral), beta x2 (sweet spot), gamma x11 (too frequent)
    text = "alpha " + "beta " * 2 + "gamma " * 11
    kws = extract_keywords(text)
    total = 14
    assert kws["alpha"] == pytest.approx(1 / total)
    assert kws["beta"] == pytest.approx(2 / total * 1.5)
    assert kws["gamma"] == pytest.approx(11 / total * 0.5)


def test_sweet_spot_beats_frequent_word_at_equal_tf():
    # Both words have tf = 0.25 in their own document
    doc_w = "wombat " * 5 + " ".join(f"filler{i}" for i in range(15))
    doc_x = "xylophone " * 15 + " ".join(f"filler{i}" for i in range(45))
    w = extract_keywords(doc_w)["wombat"]
    x = extract_keywords(doc_x)["xylophone"]
    assert w == pytest.approx(0.25 * 1.5)
    assert x == pytest.approx(0.25 * 0.5)
    assert w > x


def test_ordered_highest_first_and_truncated():
    text = "kappa " * 4 + "lambda " * 3 + "sigma " * 2 + "omega zeta"
    kws = extract_keywords(text, max_keywords=3)
    assert list(kws) == ["kappa", "lambda", "sigma"]
    assert extract_keywords(text, max_keywords=0) == {}


def test_ties_keep_first_occurrence_order():
    kws = extract_keywords("zebra apple mango")
    assert list(kws) == ["zebra", "apple", "mango"]


def test_article_text_joins_title_excerpt_and_content():
    a = Article(id="a1", title="Title", excerpt=None, content="Body")
    assert article_text(a) == "Title  Body"


def test_reading_time_estimate():
    assert estimate_reading_time("") == 1
    assert estimate_reading_time("word " * 200) == 1
    assert estimate_reading_time("word " * 201) == 2
    assert estimate_reading_time("<p>" + "word " * 400 + "</p>") == 2
    assert estimate_reading_seconds("word " * 401) == 180
