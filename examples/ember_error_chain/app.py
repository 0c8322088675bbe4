"""Error chains -- which template failed, and who rendered it.

A failure inside a nested template reaches the caller as one
``TemplateFailure`` naming every template from the failure point outwards,
with the original exception kept as ``cause``.

Run:
    python app.py
"""

from ember import DictStorage, TemplateFailure, View

storage = DictStorage(
    {
        "orders/index.phtml": "<h1>Orders</h1>\n<%= render('orders/totals', {'orders': orders}) %>\n",
        "orders/totals.phtml": (
            "<% total = sum(o['amount'] for o in orders) %>\n"
            "Average: <%= total / len(orders) %>\n"
        ),
    }
)

view = View(storage, assigns={"user": "ada"})

try:
    view.render("orders/index", {"orders": []})
except TemplateFailure as e:
    failure = e
else:
    raise AssertionError("expected the render to fail")

report = failure.format_compact()


def main() -> None:
    print(report)


if __name__ == "__main__":
    main()
