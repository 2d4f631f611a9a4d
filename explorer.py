import os
import shlex
import sys
from typing import Callable, List, Optional, TextIO

from core.logger import get_logger
from core.models import Product
from core.render import (
    render_cart_text,
    render_catalog_html,
    render_catalog_text,
    render_detail_text,
)
from core.session import CatalogSession

logger = get_logger(__name__)

MODE = os.getenv("MODE", "once").lower()  # "once" or "interactive"
QUERY = os.getenv("QUERY", "").strip()
BARCODE = os.getenv("BARCODE", "").strip()
CATEGORY = os.getenv("CATEGORY", "").strip()
SORT = os.getenv("SORT", "").strip().lower()
HTML_OUT = os.getenv("HTML_OUT", "").strip()
WAIT_SECONDS = float(os.getenv("WAIT_SECONDS", "60"))

HELP_TEXT = """Commands:
  search <text>      search products by name
  barcode <code>     look up a product by barcode
  categories         list categories
  category <id|all>  filter by category
  sort name|grade    sort (repeat to flip direction)
  more               load more products
  show <n>           show product details
  add <n>            add product to cart
  back               return to the product list
  cart               show cart
  quit               exit"""


def catalog_text(session: CatalogSession) -> str:
    return render_catalog_text(
        session.view(),
        cart_count=session.cart.total_quantity,
        categories=session.categories,
        category_id=session.category_id,
        sort=session.sort,
        loading=session.loading,
    )


def write_html(session: CatalogSession, path: str) -> None:
    html = render_catalog_html(
        session.view(),
        cart_count=session.cart.total_quantity,
        categories=session.categories,
        category_id=session.category_id,
        sort=session.sort,
    )
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(html)
    logger.info("Wrote HTML catalog to %s", path)


def _wait(session: CatalogSession) -> None:
    if not session.wait(WAIT_SECONDS):
        logger.warning("Queries still pending after %.0fs; showing what has arrived.", WAIT_SECONDS)


def run_once(session: Optional[CatalogSession] = None, out: TextIO = sys.stdout) -> int:
    session = session or CatalogSession()
    try:
        session.start()
        _wait(session)

        if BARCODE:
            session.lookup_barcode(BARCODE)
        elif QUERY:
            session.search(QUERY)
        _wait(session)

        if CATEGORY:
            session.select_category(CATEGORY)
        if SORT:
            try:
                session.toggle_sort(SORT)
            except ValueError as e:
                logger.error("Ignoring SORT=%s: %s", SORT, e)

        out.write(catalog_text(session))
        if HTML_OUT:
            write_html(session, HTML_OUT)
    finally:
        session.close()
    return 0


class ConsoleApp:
    """
    Line-oriented stand-in for the in-page controls.
    """

    def __init__(self, session: CatalogSession, out: TextIO = sys.stdout):
        self.session = session
        self.out = out
        self.commands: dict[str, Callable[[str], bool]] = {
            "search": self.cmd_search,
            "barcode": self.cmd_barcode,
            "categories": self.cmd_categories,
            "category": self.cmd_category,
            "sort": self.cmd_sort,
            "more": self.cmd_more,
            "show": self.cmd_show,
            "add": self.cmd_add,
            "back": self.cmd_back,
            "cart": self.cmd_cart,
            "help": self.cmd_help,
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
        }

    def print(self, text: str) -> None:
        self.out.write(text if text.endswith("\n") else text + "\n")

    def show_catalog(self) -> None:
        self.print(catalog_text(self.session))

    def _product_at(self, arg: str) -> Optional[Product]:
        try:
            index = int(arg)
        except ValueError:
            self.print(f"Not a product number: {arg!r}")
            return None
        visible: List[Product] = self.session.visible
        if index < 1 or index > len(visible):
            self.print(f"No product #{index} on screen.")
            return None
        return visible[index - 1]

    def cmd_search(self, arg: str) -> bool:
        if self.session.search(arg) is None:
            self.print("Enter a search term.")
            return True
        _wait(self.session)
        self.show_catalog()
        return True

    def cmd_barcode(self, arg: str) -> bool:
        if self.session.lookup_barcode(arg) is None:
            self.print("Enter a barcode.")
            return True
        _wait(self.session)
        self.show_catalog()
        return True

    def cmd_categories(self, arg: str) -> bool:
        categories = self.session.categories
        if not categories:
            self.print("No categories loaded.")
            return True
        lines = ["  all  (All Categories)"]
        lines += [f"  {c.category_id}  ({c.name})" for c in categories]
        self.print("\n".join(lines))
        return True

    def cmd_category(self, arg: str) -> bool:
        self.session.select_category(arg)
        self.show_catalog()
        return True

    def cmd_sort(self, arg: str) -> bool:
        try:
            self.session.toggle_sort(arg.strip().lower())
        except ValueError:
            self.print("Sort by 'name' or 'grade'.")
            return True
        self.show_catalog()
        return True

    def cmd_more(self, arg: str) -> bool:
        if not self.session.view().has_more:
            self.print("No more products.")
            return True
        self.session.load_more()
        self.show_catalog()
        return True

    def cmd_show(self, arg: str) -> bool:
        product = self._product_at(arg)
        if product is not None:
            detail = self.session.select(product)
            self.print(render_detail_text(detail, self.session.cart.quantity_of(product.product_id)))
        return True

    def cmd_add(self, arg: str) -> bool:
        product = self._product_at(arg) if arg else self.session.selected
        if product is None:
            if not arg:
                self.print("Choose a product number to add.")
            return True
        line = self.session.add_to_cart(product)
        self.print(
            f"Added {product.name} (x{line.quantity}). Cart: {self.session.cart.total_quantity} item(s)."
        )
        return True

    def cmd_back(self, arg: str) -> bool:
        self.session.dismiss()
        self.show_catalog()
        return True

    def cmd_cart(self, arg: str) -> bool:
        self.print(render_cart_text(self.session.cart))
        return True

    def cmd_help(self, arg: str) -> bool:
        self.print(HELP_TEXT)
        return True

    def cmd_quit(self, arg: str) -> bool:
        return False

    def handle(self, line: str) -> bool:
        try:
            parts = shlex.split(line)
        except ValueError:
            parts = line.split()
        if not parts:
            return True
        name, arg = parts[0].lower(), " ".join(parts[1:])
        command = self.commands.get(name)
        if command is None:
            self.print(f"Unknown command {name!r}. Type 'help'.")
            return True
        return command(arg)


def run_interactive(session: Optional[CatalogSession] = None, stdin: TextIO = sys.stdin, out: TextIO = sys.stdout) -> int:
    session = session or CatalogSession()
    app = ConsoleApp(session, out)
    try:
        session.start()
        _wait(session)
        app.show_catalog()
        app.print("Type 'help' for commands.")
        for line in stdin:
            try:
                if not app.handle(line):
                    break
            except Exception as e:
                logger.exception("Error handling command %r: %s", line.strip(), e)
    finally:
        session.close()
    return 0


def main() -> None:
    try:
        if MODE == "interactive":
            raise SystemExit(run_interactive())
        else:
            raise SystemExit(run_once())
    except KeyboardInterrupt:
        raise SystemExit(130)
    except Exception as e:
        logger.exception("Fatal explorer error: %s", e)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
