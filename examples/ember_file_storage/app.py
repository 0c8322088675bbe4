"""File-backed templates -- the most common real-world pattern.

Templates live under ``templates/`` and are addressed by logical path
(``layouts/page`` → ``templates/layouts/page.phtml``). With template
loading cached, edits on disk are picked up once the file's modification
time moves past the time it was last loaded.

Run:
    python app.py
"""

from pathlib import Path

from ember import FileSystemStorage, View

templates_dir = Path(__file__).parent / "templates"
storage = FileSystemStorage(templates_dir)

orders = [
    {"id": 1, "customer": "Ada"},
    {"id": 2, "customer": "Grace <admin>"},
]

view = View(storage, assigns={"title": "Orders"})
output = view.render("layouts/page", {"orders": orders})

# use_full_path=False takes a storage path; the extension picks the flavor
direct_output = view.render(
    file=str(templates_dir / "orders" / "list.phtml"),
    use_full_path=False,
    locals={"orders": orders[:1]},
)


def main() -> None:
    print(output)
    print(direct_output)


if __name__ == "__main__":
    main()
