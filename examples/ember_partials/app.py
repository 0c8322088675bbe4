"""Partials -- single objects, collections and spacers.

``render(partial="row")`` renders ``_row.phtml`` with the object bound to
``row``. Collections also bind ``row_counter`` and render the spacer
template between elements.

Run:
    python app.py
"""

from ember import DictStorage, View

storage = DictStorage(
    {
        "orders/index.phtml": (
            "<ul>\n"
            "<%= render(partial='orders/row', collection=orders, spacer_template='orders/divider') %>"
            "</ul>\n"
        ),
        "orders/_row.phtml": "  <li><%= row_counter + 1 %>. <%= h(row['item']) %></li>\n",
        "orders/_divider.phtml": "  <li class=\"divider\"></li>\n",
        "orders/_summary.phtml": "<p><%= len(summary) %> orders</p>",
    }
)

orders = [{"item": "Tea"}, {"item": "Fish & Chips"}, {"item": "Scones"}]
view = View(storage, assigns={"orders": orders})

output = view.render("orders/index")
summary_output = view.render(partial="orders/summary", object=orders)
empty_output = view.render(partial="orders/row", collection=[])


def main() -> None:
    print(output)
    print(summary_output)


if __name__ == "__main__":
    main()
