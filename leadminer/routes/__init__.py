from .scraping import router as scraping_router

__all__ = ["scraping_router"]
