"""
mock_catalog.py — Mock of the Published Catalog Sheet

Serves a small tab-separated catalog in the same shape as the spreadsheet
export the storefront publishes, so the checkout can be run locally with
CATALOG_URL=http://localhost:8002/catalog.tsv.

Port:
    Default: 8002 (HTTP)
"""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

app = FastAPI(title="Mock Catalog")

CATALOG_ROWS = [
    ("id", "name", "price", "categories", "active"),
    ("A", "Lapin crochet", "10,00", "Animal|Peluche", "TRUE"),
    ("B", "Mobile bébé", "5.50", "Bébé", "yes"),
    ("C", "Guirlande", "12.90", "Décoration", "1"),
    ("OLD", "Ancien modèle", "8.00", "Animal", "FALSE"),
    ("FREE", "Échantillon", "0", "", "TRUE"),
]


def catalog_tsv() -> str:
    """Returns the sample catalog as TSV text."""
    return "\r\n".join("\t".join(row) for row in CATALOG_ROWS) + "\r\n"


@app.get("/catalog.tsv", response_class=PlainTextResponse)
def get_catalog():
    return catalog_tsv()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
