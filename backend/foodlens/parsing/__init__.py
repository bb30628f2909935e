from .json_extract import extract_json, extract_json_array, extract_json_object

__all__ = ["extract_json", "extract_json_array", "extract_json_object"]
