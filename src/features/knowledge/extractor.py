"""HTML content extraction for pages fetched without the reader service."""

import re

from bs4 import BeautifulSoup, Tag

# Storefront chrome: navigation, footer, chat widget and overlays
NOISE_SELECTORS = [
    'script', 'style', 'noscript', 'template', 'iframe', 'svg', 'form',
    'nav', 'header', 'footer',
    '.MuiAppBar-root', '.MuiDrawer-root', '.MuiDialog-root', '.MuiFab-root',
    '.MuiSnackbar-root', '[role="dialog"]', '[role="navigation"]',
    '[class*="cookie" i]', '[id*="cookie" i]', '[class*="consent" i]',
]

# First match wins
CONTENT_SELECTORS = ['main', '[role="main"]', 'article', '#__next', 'body']

BOILERPLATE_LINES = [
    re.compile(r'^©\s*\d{4}', re.I),
    re.compile(r'all\s+rights\s+reserved', re.I),
    re.compile(r'всички\s+права\s+запазени', re.I),
    re.compile(r'accept\s+(all\s+)?cookies', re.I),
    re.compile(r'приемам\s+(всички\s+)?бисквитки', re.I),
]

TITLE_SUFFIX = re.compile(r'\s*[|\-–]\s*EcoVibe\s*Floors?\s*$', re.I)

BLOCK_PREFIXES = {'h1': '# ', 'h2': '## ', 'h3': '### ', 'h4': '#### ', 'li': '- '}


class HTMLExtractor:
    """Reduce a storefront page to the markdown-like text the reader service returns."""

    def extract(self, html: str) -> dict:
        """
        Args:
            html: Raw HTML string

        Returns:
            Dict with title and content
        """
        soup = BeautifulSoup(html, 'lxml')
        title = self._extract_title(soup)

        for selector in NOISE_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

        root = self._find_main_content(soup)
        return {'title': title, 'content': self._to_text(root)}

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str | None:
        og_title = soup.find('meta', property='og:title')
        if og_title and og_title.get('content'):
            raw = og_title['content']
        elif soup.title and soup.title.string:
            raw = soup.title.string
        elif soup.h1:
            raw = soup.h1.get_text(' ', strip=True)
        else:
            return None
        return TITLE_SUFFIX.sub('', raw.strip()) or raw.strip()

    @staticmethod
    def _find_main_content(soup: BeautifulSoup) -> Tag | BeautifulSoup:
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                return element
        return soup

    def _to_text(self, root: Tag | BeautifulSoup) -> str:
        """Headings and list items become markdown lines, other blocks plain paragraphs."""
        blocks = []
        for element in root.find_all(['h1', 'h2', 'h3', 'h4', 'p', 'li', 'td']):
            # Nested blocks are emitted by their innermost element
            if element.find(['p', 'li']) is not None:
                continue
            text = ' '.join(element.get_text(' ', strip=True).split())
            if not text or self._is_boilerplate(text):
                continue
            blocks.append(BLOCK_PREFIXES.get(element.name, '') + text)

        if not blocks:
            lines = (line.strip() for line in root.get_text('\n').splitlines())
            blocks = [line for line in lines if line and not self._is_boilerplate(line)]

        return '\n\n'.join(self._dedupe(blocks))

    @staticmethod
    def _is_boilerplate(text: str) -> bool:
        return any(pattern.search(text) for pattern in BOILERPLATE_LINES)

    @staticmethod
    def _dedupe(blocks: list[str]) -> list[str]:
        """Drop exact repeats, e.g. the same card rendered for mobile and desktop."""
        seen = set()
        unique = []
        for block in blocks:
            if block not in seen:
                seen.add(block)
                unique.append(block)
        return unique
