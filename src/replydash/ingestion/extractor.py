"""
Text Extraction

Converts uploaded files and web pages into plain text.

Supported sources:
- pdf: page text concatenated in document order (pypdf)
- docx: raw paragraph text, formatting discarded (python-docx)
- txt / md: decoded as UTF-8
- url: fetched over HTTP, non-content elements stripped, main content
  container preferred over the full body

Usage:
    extractor = TextExtractor()
    text = extractor.extract_text(file_bytes, "pdf")
    page_text = extractor.extract_text_from_url("https://example.com/about")
"""

import io
import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from docx import Document as DocxDocument
from pypdf import PdfReader

from ..rag.config import RAGConfig
from .cleaner import collapse_whitespace

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when text cannot be extracted from a source."""
    pass


class TextExtractor:
    """Extracts plain text from files and URLs."""

    # Elements that never carry page content
    NON_CONTENT_TAGS = ["script", "style", "nav", "header", "footer", "iframe", "noscript"]

    # Preferred content containers, first match wins
    CONTENT_SELECTORS = "main, article, .content, .post, #content"

    # Block elements whose boundaries become paragraph breaks
    BLOCK_TAGS = [
        "p", "div", "section", "li", "blockquote", "pre", "table", "tr",
        "h1", "h2", "h3", "h4", "h5", "h6", "br",
    ]

    def __init__(
        self,
        config: Optional[RAGConfig] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize extractor.

        Args:
            config: RAG configuration
            http_client: HTTP client for URL sources (created on demand if omitted)
        """
        self.config = config or RAGConfig()
        self._http_client = http_client

    def extract_text(self, data: bytes, file_type: str) -> str:
        """
        Extract text from raw file bytes.

        Args:
            data: File content
            file_type: Declared type (pdf, docx, txt, md)

        Returns:
            Extracted plain text

        Raises:
            ExtractionError: If the type is unsupported or parsing fails
        """
        file_type = (file_type or "").lower()
        try:
            if file_type == "pdf":
                return self._extract_pdf(data)
            if file_type == "docx":
                return self._extract_docx(data)
            if file_type in ("txt", "md"):
                return data.decode("utf-8")
            raise ExtractionError(f"Unsupported file type: {file_type}")
        except ExtractionError as e:
            logger.error(f"Error extracting text from {file_type}: {e}")
            raise
        except Exception as e:
            logger.error(f"Error extracting text from {file_type}: {e}")
            raise ExtractionError(
                f"Failed to extract text from {file_type}: {e}"
            ) from e

    def _extract_pdf(self, data: bytes) -> str:
        reader = PdfReader(io.BytesIO(data))
        pages = []
        for page in reader.pages:
            pages.append(page.extract_text() or "")
        return "\n\n".join(pages)

    def _extract_docx(self, data: bytes) -> str:
        doc = DocxDocument(io.BytesIO(data))
        return "\n\n".join(para.text for para in doc.paragraphs)

    def extract_text_from_url(self, url: str) -> str:
        """
        Fetch a web page and extract its readable text.

        Args:
            url: Page URL

        Returns:
            Page text with whitespace collapsed and block boundaries
            kept as paragraph breaks

        Raises:
            ExtractionError: If the fetch fails or too little text remains
        """
        try:
            html = self._fetch(url)
            text = self.parse_html(html)

            if len(text) < self.config.min_url_chars:
                raise ExtractionError(
                    f"content too short ({len(text)} characters, "
                    f"minimum {self.config.min_url_chars})"
                )

            logger.info(f"Extracted {len(text):,} characters from {url}")
            return text
        except Exception as e:
            logger.error(f"Error extracting text from URL {url}: {e}")
            raise ExtractionError(f"Failed to extract text from url {url}: {e}") from e

    def _fetch(self, url: str) -> str:
        """Fetch URL content with the identifying user agent."""
        headers = {"User-Agent": self.config.fetch_user_agent}
        if self._http_client is not None:
            response = self._http_client.get(
                url,
                headers=headers,
                timeout=self.config.fetch_timeout,
                follow_redirects=True
            )
            response.raise_for_status()
            return response.text

        with httpx.Client(
            headers=headers,
            timeout=self.config.fetch_timeout,
            follow_redirects=True
        ) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.text

    def parse_html(self, html: str) -> str:
        """
        Extract readable text from an HTML document.

        Args:
            html: Raw HTML

        Returns:
            Text of the primary content container, or of the body when
            no container matches
        """
        soup = BeautifulSoup(html, "html.parser")

        # Remove unwanted tags
        for tag in soup(self.NON_CONTENT_TAGS):
            tag.decompose()

        container = soup.select_one(self.CONTENT_SELECTORS)
        if container is None:
            container = soup.body or soup

        for tag in container.find_all(self.BLOCK_TAGS):
            tag.insert_before("\n\n")
            tag.insert_after("\n\n")

        return collapse_whitespace(container.get_text())
