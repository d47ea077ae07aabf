from genfuze.export.csv_export import CSV_HEADERS, export_filename, sessions_to_csv

__all__ = ["CSV_HEADERS", "export_filename", "sessions_to_csv"]
