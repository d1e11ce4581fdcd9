"""Storefront HTML extraction tests."""

from src.features.knowledge.extractor import HTMLExtractor

PAGE = """
<html>
<head>
  <title>What is oak flooring | EcoVibe Floors</title>
</head>
<body>
  <div id="__next">
    <div class="MuiAppBar-root"><a href="/en">Home</a><a href="/en/oak">Oak</a></div>
    <main>
      <h1>What is oak flooring</h1>
      <p>Engineered oak has a real wood top layer.</p>
      <ul><li>Underfloor heating</li><li>Click installation</li></ul>
      <p>Engineered oak has a real wood top layer.</p>
    </main>
    <div class="MuiDialog-root" role="dialog"><p>Ask our assistant</p></div>
    <div class="CookieBanner">We use cookies</div>
  </div>
</body>
</html>
"""


def test_extracts_main_content_as_markdown():
    result = HTMLExtractor().extract(PAGE)

    assert result["title"] == "What is oak flooring"
    assert result["content"] == "\n\n".join(
        [
            "# What is oak flooring",
            "Engineered oak has a real wood top layer.",
            "- Underfloor heating",
            "- Click installation",
        ]
    )


def test_drops_storefront_chrome():
    content = HTMLExtractor().extract(PAGE)["content"]
    assert "Home" not in content
    assert "Ask our assistant" not in content
    assert "cookies" not in content


def test_bulgarian_boilerplate_and_og_title():
    html = (
        '<html><head><meta property="og:title" content="Дъб - EcoVibe Floors"></head>'
        "<body><main><p>Дъбов паркет.</p><p>© 2025 EcoVibe. Всички права запазени.</p></main>"
        "</body></html>"
    )
    result = HTMLExtractor().extract(html)
    assert result["title"] == "Дъб"
    assert result["content"] == "Дъбов паркет."


def test_plain_text_without_blocks():
    result = HTMLExtractor().extract("<html><body><main>Oak<br>Vinyl</main></body></html>")
    assert result["title"] is None
    assert result["content"] == "Oak\n\nVinyl"
