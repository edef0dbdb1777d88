from src.queue_finder.services.text import clean_text, decode_html_entities


def test_decodes_named_and_numeric_entities() -> None:
    assert decode_html_entities("Szpital &quot;Med&quot; &amp; Sp&#243;&#x142;ka") == 'Szpital "Med" & Spółka'


def test_decoding_is_single_pass() -> None:
    assert decode_html_entities("&amp;amp;") == "&amp;"
    assert decode_html_entities(decode_html_entities("&amp;amp;")) == "&"


def test_text_without_entities_is_unchanged() -> None:
    text = "PORADNIA KARDIOLOGICZNA; ul. Polna 1"
    assert decode_html_entities(text) == text
    assert decode_html_entities(decode_html_entities(text)) == text


def test_unknown_entities_are_kept() -> None:
    assert decode_html_entities("a &bogus; b &#xZZ; c") == "a &bogus; b &#xZZ; c"


def test_clean_text_trims_and_drops_empty_values() -> None:
    assert clean_text("  Warszawa&nbsp;") == "Warszawa"
    assert clean_text("   ") is None
    assert clean_text(None) is None
