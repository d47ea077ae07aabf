from genfuze.content.extractor import ContentFetchError, extract_content, parse_html

__all__ = ["ContentFetchError", "extract_content", "parse_html"]
