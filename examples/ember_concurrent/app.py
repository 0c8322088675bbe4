"""Concurrent rendering -- one compile, eight threads.

Each thread renders the same never-before-seen template through its own
View. The unit registry compiles the template once and every thread gets
the same compiled unit; each View keeps its own locals.

Run:
    python app.py
"""

from concurrent.futures import ThreadPoolExecutor

from ember import DictStorage, UnitKey, View, configure, get_template_cache

configure(cache_template_loading=True)

TEMPLATE_SOURCE = """\
<article id="page-<%= page_id %>">
  <h1><%= title %></h1>
  <ul>
<% for tag in tags: -%>
    <li><%= tag %></li>
<% end -%>
  </ul>
</article>"""

storage = DictStorage({"page.phtml": TEMPLATE_SOURCE})

pages = [
    {"page_id": i, "title": f"Page {i}", "tags": [f"tag-{i}-a", f"tag-{i}-b", f"tag-{i}-c"]}
    for i in range(8)
]


def render_page(page: dict) -> str:
    """Render a single page -- called from a worker thread."""
    return View(storage).render("page", page)


with ThreadPoolExecutor(max_workers=8) as pool:
    results = list(pool.map(render_page, pages))

output = "\n".join(results)
compiles = get_template_cache().units.stats["compiles"]
unit = get_template_cache().units.get(UnitKey.for_file("page.phtml"))


def main() -> None:
    print(f"Rendered {len(results)} pages across 8 threads ({compiles} compile):\n")
    for i, html in enumerate(results):
        print(f"--- Thread {i} ---")
        print(html)
        print()


if __name__ == "__main__":
    main()
