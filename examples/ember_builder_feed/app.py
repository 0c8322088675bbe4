"""Structured builder templates -- an RSS feed from Python code.

A ``.pxml`` template is Python run against an ``XmlMarkup`` named ``xml``.
Rendering one defaults the host's Content-Type header to ``text/xml``.

Run:
    python app.py
"""

from types import SimpleNamespace

from ember import DictStorage, View

FEED = '''\
xml.instruct_()
with xml.rss(version="2.0"):
    with xml.channel():
        xml.title(feed_title)
        xml.language("en-us")
        for item in items:
            with xml.item():
                xml.title(item["title"])
                xml.link(item["url"])
'''

storage = DictStorage({"feeds/recent.pxml": FEED})
host = SimpleNamespace(headers={})

view = View(storage, assigns={"feed_title": "Recent items"}, host=host)
output = view.render(
    "feeds/recent",
    {"items": [{"title": "Tea & cake", "url": "http://example.com/1"}]},
)


def main() -> None:
    print(host.headers)
    print(output)


if __name__ == "__main__":
    main()
