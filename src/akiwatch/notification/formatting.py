"""Message text for LINE notifications."""

from typing import Optional

from ..scraper.types import ProductInfo

# LINE text messages are limited to 5000 characters
MAX_MESSAGE_LENGTH = 5000
TRUNCATION_MARKER = "\n…"


class LineMessageFormatter:
    """Builds plain-text message bodies."""

    def __init__(self, max_length: int = MAX_MESSAGE_LENGTH):
        self.max_length = max_length

    def format_availability(
        self, site_name: str, url: str, items: Optional[list[str]] = None
    ) -> str:
        lines = [site_name, "", "空きが見つかりました！"]
        if items:
            lines.append("")
            lines.extend(f"・{item}" for item in items)
        lines.extend(["", url])
        return self._truncate("\n".join(lines))

    def format_products(self, site_name: str, products: list[ProductInfo]) -> str:
        lines = [site_name, "", f"新着商品が{len(products)}件見つかりました！", ""]
        for product in products:
            lines.append(f"・{product.name}")
            if product.url:
                lines.append(f"  {product.url}")
        return self._truncate("\n".join(lines))

    def format_error(self, site_name: str, message: str) -> str:
        text = f"[エラー] {site_name}\n\nチェック中にエラーが発生しました:\n{message}"
        return self._truncate(text)

    def _truncate(self, text: str) -> str:
        if len(text) <= self.max_length:
            return text
        return text[: self.max_length - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
