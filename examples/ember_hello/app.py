"""Hello World -- the simplest ember example.

Render inline scripted markup, then a template kept in memory.

Run:
    python app.py
"""

from ember import DictStorage, View

storage = DictStorage({"greeting.phtml": "Hello, <%= name %>!"})
view = View(storage)

# Inline text: compiled once, keyed by its content
inline_output = view.render(inline="Hello, <%= name %>!", locals={"name": "World"})

# Stored template: resolved by logical path
output = view.render("greeting", {"name": "World"})


def main() -> None:
    print(inline_output)
    print(output)
    print()

    for name in ["Ember", "Python"]:
        print(view.render("greeting", {"name": name}))


if __name__ == "__main__":
    main()
