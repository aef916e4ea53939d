"""Unit tests for file and URL text extraction."""

import io
import pytest
import httpx
from unittest.mock import patch, MagicMock
from docx import Document

from replydash.ingestion.extractor import ExtractionError, TextExtractor
from replydash.rag.config import RAGConfig


ARTICLE_HTML = """
<html>
  <head><title>About</title><style>body { color: red; }</style></head>
  <body>
    <nav>Home | Pricing | Blog</nav>
    <header>Acme header</header>
    <main>
      <h1>About Acme</h1>
      <p>Acme builds <b>reply tooling</b> for
         social teams.</p>
      <p>Our support team answers within a day.</p>
      <script>trackVisit();</script>
    </main>
    <footer>Copyright Acme</footer>
  </body>
</html>
"""


@pytest.fixture
def docx_bytes():
    """A small DOCX document."""
    doc = Document()
    doc.add_paragraph("First paragraph of the handbook.")
    doc.add_paragraph("Second paragraph with details.")
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def make_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestExtractText:
    """Tests for file extraction."""

    def test_txt(self):
        extractor = TextExtractor()
        assert extractor.extract_text("héllo".encode("utf-8"), "txt") == "héllo"

    def test_markdown_is_plain_text(self):
        extractor = TextExtractor()
        assert extractor.extract_text(b"# Title\n\nBody", "md") == "# Title\n\nBody"

    def test_file_type_case_insensitive(self):
        extractor = TextExtractor()
        assert extractor.extract_text(b"text", "TXT") == "text"

    def test_invalid_utf8(self):
        extractor = TextExtractor()
        with pytest.raises(ExtractionError, match="Failed to extract text from txt"):
            extractor.extract_text(b"\xff\xfe\xfa", "txt")

    def test_docx(self, docx_bytes):
        extractor = TextExtractor()

        text = extractor.extract_text(docx_bytes, "docx")

        assert text == "First paragraph of the handbook.\n\nSecond paragraph with details."

    def test_corrupt_docx(self):
        extractor = TextExtractor()
        with pytest.raises(ExtractionError, match="Failed to extract text from docx"):
            extractor.extract_text(b"not a zip archive", "docx")

    @patch("replydash.ingestion.extractor.PdfReader")
    def test_pdf_pages_joined(self, mock_reader):
        page1, page2, blank = MagicMock(), MagicMock(), MagicMock()
        page1.extract_text.return_value = "Page one"
        page2.extract_text.return_value = "Page two"
        blank.extract_text.return_value = None
        mock_reader.return_value.pages = [page1, blank, page2]

        extractor = TextExtractor()
        text = extractor.extract_text(b"%PDF-1.4", "pdf")

        assert text == "Page one\n\n\n\nPage two"

    @patch("replydash.ingestion.extractor.PdfReader")
    def test_corrupt_pdf(self, mock_reader):
        mock_reader.side_effect = Exception("EOF marker not found")

        extractor = TextExtractor()
        with pytest.raises(ExtractionError, match="EOF marker not found"):
            extractor.extract_text(b"not a pdf", "pdf")

    def test_unsupported_type(self):
        extractor = TextExtractor()
        with pytest.raises(ExtractionError, match="Unsupported file type: exe"):
            extractor.extract_text(b"MZ", "exe")


class TestParseHtml:
    """Tests for HTML to text conversion."""

    def test_prefers_main_content(self):
        text = TextExtractor().parse_html(ARTICLE_HTML)

        assert text == (
            "About Acme\n\n"
            "Acme builds reply tooling for social teams.\n\n"
            "Our support team answers within a day."
        )

    def test_strips_non_content(self):
        text = TextExtractor().parse_html(ARTICLE_HTML)

        assert "trackVisit" not in text
        assert "Pricing" not in text
        assert "Copyright" not in text
        assert "color" not in text

    def test_falls_back_to_body(self):
        html = "<html><body><div>Alpha</div><div>Beta</div></body></html>"

        assert TextExtractor().parse_html(html) == "Alpha\n\nBeta"

    def test_content_class_selector(self):
        html = (
            "<html><body><div>Sidebar</div>"
            "<div class='content'><p>Inside</p></div></body></html>"
        )

        assert TextExtractor().parse_html(html) == "Inside"


class TestExtractTextFromUrl:
    """Tests for URL extraction."""

    def test_fetches_with_user_agent(self):
        seen = {}

        def handler(request):
            seen["user_agent"] = request.headers.get("user-agent")
            return httpx.Response(200, text=ARTICLE_HTML)

        config = RAGConfig(min_url_chars=10)
        extractor = TextExtractor(config, http_client=make_client(handler))

        text = extractor.extract_text_from_url("https://acme.example/about")

        assert text.startswith("About Acme")
        assert seen["user_agent"] == config.fetch_user_agent

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old-about":
                return httpx.Response(301, headers={"Location": "https://acme.example/about"})
            return httpx.Response(200, text=ARTICLE_HTML)

        extractor = TextExtractor(RAGConfig(min_url_chars=10), http_client=make_client(handler))

        text = extractor.extract_text_from_url("https://acme.example/old-about")

        assert text.startswith("About Acme")

    def test_too_short(self):
        client = make_client(lambda request: httpx.Response(200, text="<p>Hi</p>"))
        extractor = TextExtractor(http_client=client)

        with pytest.raises(ExtractionError, match="content too short"):
            extractor.extract_text_from_url("https://acme.example/empty")

    def test_http_error(self):
        client = make_client(lambda request: httpx.Response(404, text="missing"))
        extractor = TextExtractor(http_client=client)

        with pytest.raises(ExtractionError, match="https://acme.example/missing"):
            extractor.extract_text_from_url("https://acme.example/missing")

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        extractor = TextExtractor(http_client=make_client(handler))

        with pytest.raises(ExtractionError, match="connection refused"):
            extractor.extract_text_from_url("https://acme.example/down")
