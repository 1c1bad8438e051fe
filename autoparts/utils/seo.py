from typing import Any, Dict, List, Optional, Sequence

from autoparts.core.config import settings

META_TITLE_MAX_LENGTH = 160
META_DESCRIPTION_MAX_LENGTH = 300
META_KEYWORDS_MAX_LENGTH = 300


class SeoUtil:
    """Text generators for page metadata, canonical URLs and JSON-LD."""

    @staticmethod
    def truncate(text: str, max_length: int) -> str:
        """Cut text to max_length on a word boundary and append an ellipsis."""
        if len(text) <= max_length:
            return text

        truncated = text[:max_length]
        last_space = truncated.rfind(" ")
        if last_space > 0:
            return truncated[:last_space] + "..."
        return truncated + "..."

    # ---------- Categories ----------
    @staticmethod
    def category_meta_title(name: str) -> str:
        title = f"{name} - купить в интернет-магазине {settings.SHOP_NAME}"
        return SeoUtil.truncate(title, META_TITLE_MAX_LENGTH - 3)

    @staticmethod
    def category_meta_description(name: str, description: Optional[str] = None) -> str:
        if description:
            clean_description = SeoUtil.truncate(description.strip(), 150)
            return (
                f"{clean_description} Доставка по {settings.SHOP_CITY_DATIVE}. "
                f"Гарантия качества."
            )
        text = (
            f'Большой выбор товаров в категории "{name}". Выгодные цены, '
            f"быстрая доставка по {settings.SHOP_CITY_DATIVE}. {settings.SHOP_NAME}."
        )
        return SeoUtil.truncate(text, META_DESCRIPTION_MAX_LENGTH - 3)

    @staticmethod
    def category_meta_keywords(name: str, parent_name: Optional[str] = None) -> str:
        lowered = name.lower()
        keywords = [lowered]
        keywords.extend(word for word in lowered.split() if len(word) > 3)
        if parent_name:
            keywords.append(parent_name.lower())
        keywords.append(f"купить {lowered}")
        keywords.append(f"{lowered} в {settings.SHOP_CITY_PREPOSITIONAL}")
        keywords.append(settings.SHOP_NAME.lower())

        return SeoUtil.join_keywords(keywords, META_KEYWORDS_MAX_LENGTH)

    @staticmethod
    def join_keywords(keywords: Sequence[str], max_length: int) -> str:
        """De-duplicate keeping first occurrence; drop trailing keywords that do not fit."""
        result: List[str] = []
        length = 0
        for keyword in dict.fromkeys(keywords):
            added = len(keyword) + (2 if result else 0)
            if length + added > max_length:
                break
            result.append(keyword)
            length += added
        return ", ".join(result)

    # ---------- URLs ----------
    @staticmethod
    def category_canonical_url(slug: str) -> str:
        return f"/catalog/{slug}"

    @staticmethod
    def product_canonical_url(slug: str) -> str:
        return f"/product/{slug}"

    @staticmethod
    def absolute_url(path: str) -> str:
        return f"{settings.BASE_URL.rstrip('/')}{path}"

    # ---------- Structured data ----------
    @staticmethod
    def category_structured_data(
        name: str,
        description: Optional[str],
        canonical_url: str,
        breadcrumbs: Optional[List[Dict[str, str]]] = None,
    ) -> List[Dict[str, Any]]:
        structured_data: List[Dict[str, Any]] = []

        if breadcrumbs:
            structured_data.append({
                "@context": "https://schema.org",
                "@type": "BreadcrumbList",
                "itemListElement": [
                    {
                        "@type": "ListItem",
                        "position": index,
                        "name": crumb["name"],
                        "item": crumb["url"],
                    }
                    for index, crumb in enumerate(breadcrumbs, start=1)
                ],
            })

        structured_data.append({
            "@context": "https://schema.org",
            "@type": "CollectionPage",
            "name": name,
            "description": description,
            "url": canonical_url,
        })

        return structured_data
