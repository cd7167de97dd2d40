from __future__ import annotations

import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib import parse

import pytest

from citechat.web import (
    DuckDuckGoSearch,
    FetchError,
    PageReader,
    extract_article,
    fetch_text,
    parse_search_results,
)
from citechat.web.fetch import USER_AGENT, decode_body
from citechat.web.search import unwrap_redirect


RESULTS_PAGE = """
<html><body>
  <div class="result">
    <h2><a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fdoc.rust-lang.org%2Fbook%2F&amp;rut=abc">The <b>Rust</b> Book</a></h2>
    <a class="result__snippet" href="#">Ownership and the <b>borrow checker</b>.</a>
  </div>
  <div class="result">
    <h2><a class="result__a" href="https://blog.example/borrowing">Borrowing explained</a></h2>
  </div>
  <div class="result">
    <h2><a class="result__a" href="/y.js?ad=1">Sponsored</a></h2>
    <div class="result__snippet">An ad</div>
  </div>
  <div class="result"><h2><a class="result__a">No link</a></h2></div>
</body></html>
"""

ARTICLE_PAGE = """
<html>
  <head><title>Understanding Ownership</title><style>body { color: red; }</style></head>
  <body>
    <nav>Home | Docs | Blog</nav>
    <header>Site banner</header>
    <article>
      <h1>Ownership</h1>
      <p>Each value has an&nbsp;owner.</p>
      <script>trackVisitor();</script>
      <p>There can only be one owner at a time.</p>
    </article>
    <footer>Copyright</footer>
  </body>
</html>
"""


def test_parse_search_results_resolves_links_and_snippets() -> None:
    results = parse_search_results(RESULTS_PAGE)

    assert [result.url for result in results] == [
        "https://doc.rust-lang.org/book/",
        "https://blog.example/borrowing",
        "https://duckduckgo.com/y.js?ad=1",
    ]
    assert results[0].title == "The Rust Book"
    assert results[0].snippet == "Ownership and the borrow checker ."
    assert results[1].snippet == ""


def test_parse_search_results_honours_limit() -> None:
    assert len(parse_search_results(RESULTS_PAGE, limit=2)) == 2


def test_unwrap_redirect_leaves_direct_links_alone() -> None:
    assert unwrap_redirect("https://example.com/l/?uddg=x") == "https://example.com/l/?uddg=x"
    assert unwrap_redirect("https://duckduckgo.com/l/?uddg=https%3A%2F%2Fa.example") == (
        "https://a.example"
    )


def test_extract_article_prefers_article_body_and_drops_chrome() -> None:
    page = extract_article(ARTICLE_PAGE, "https://rust.example/ownership")

    assert page.title == "Understanding Ownership"
    assert page.text.splitlines()[0] == "Ownership"
    assert "Each value has an owner." in page.text
    assert "There can only be one owner at a time." in page.text
    for noise in ("Home | Docs", "Site banner", "trackVisitor", "Copyright", "color: red"):
        assert noise not in page.text


def test_extract_article_title_falls_back_to_heading_then_url() -> None:
    with_heading = extract_article("<body><h1>Heading</h1><p>text</p></body>", "https://a.example")
    bare = extract_article("<body><p>text</p></body>", "https://b.example")

    assert with_heading.title == "Heading"
    assert bare.title == "https://b.example"
    assert bare.text == "text"


def test_extract_article_of_empty_page_is_empty() -> None:
    page = extract_article("<html><body><script>x()</script></body></html>", "https://c.example")

    assert page.is_empty


def test_decode_body_falls_back_from_bad_charset() -> None:
    assert decode_body("café".encode("utf-8"), "not-a-charset") == "café"
    assert decode_body("café".encode("latin-1"), "latin-1") == "café"


def _make_handler(state: dict[str, object]) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802 - signature defined by BaseHTTPRequestHandler
            requests = state.setdefault("requests", [])
            assert isinstance(requests, list)
            requests.append({"path": self.path, "user_agent": self.headers.get("User-Agent")})
            path = parse.urlparse(self.path).path
            pages = state.get("pages", {})
            assert isinstance(pages, dict)
            if path not in pages:
                self.send_response(404)
                self.end_headers()
                return
            body = str(pages[path]).encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:  # noqa: N802 - disable noisy logs
            """Silence default request logging during tests."""

    return Handler


@pytest.fixture()
def web_server() -> Iterator[tuple[dict[str, object], str]]:
    state: dict[str, object] = {
        "requests": [],
        "pages": {"/html/": RESULTS_PAGE, "/article": ARTICLE_PAGE},
    }
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(state))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base_url = f"http://{server.server_address[0]}:{server.server_address[1]}"
    try:
        yield state, base_url
    finally:
        server.shutdown()
        thread.join()


def test_fetch_text_sends_browser_headers(web_server: tuple[dict[str, object], str]) -> None:
    state, base_url = web_server

    body = fetch_text(f"{base_url}/article", timeout=5)

    assert "Understanding Ownership" in body
    assert state["requests"][0]["user_agent"] == USER_AGENT  # type: ignore[index]


def test_fetch_text_raises_fetch_error_on_http_errors(
    web_server: tuple[dict[str, object], str],
) -> None:
    _state, base_url = web_server

    with pytest.raises(FetchError):
        fetch_text(f"{base_url}/missing", timeout=5)


def test_page_reader_extracts_article(web_server: tuple[dict[str, object], str]) -> None:
    _state, base_url = web_server

    page = PageReader(timeout=5).extract(f"{base_url}/article")

    assert page.title == "Understanding Ownership"
    assert "one owner at a time" in page.text


def test_page_reader_returns_empty_content_on_failure(
    web_server: tuple[dict[str, object], str],
) -> None:
    _state, base_url = web_server

    page = PageReader(timeout=5).extract(f"{base_url}/missing")

    assert page.title == ""
    assert page.is_empty


def test_search_queries_endpoint_and_parses_results(
    web_server: tuple[dict[str, object], str],
) -> None:
    state, base_url = web_server
    search = DuckDuckGoSearch(search_url=f"{base_url}/html/", timeout=5)

    results = search.search("rust borrow checker")

    assert [result.title for result in results][:2] == ["The Rust Book", "Borrowing explained"]
    path = state["requests"][0]["path"]  # type: ignore[index]
    assert parse.parse_qs(parse.urlparse(path).query) == {"q": ["rust borrow checker"]}


def test_search_returns_empty_list_on_failure(web_server: tuple[dict[str, object], str]) -> None:
    _state, base_url = web_server

    assert DuckDuckGoSearch(search_url=f"{base_url}/nope/", timeout=5).search("rust") == []


def test_search_skips_blank_queries(web_server: tuple[dict[str, object], str]) -> None:
    state, base_url = web_server

    assert DuckDuckGoSearch(search_url=f"{base_url}/html/").search("   ") == []
    assert state["requests"] == []
