from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from catalog import search_products
from checkout import get_order, list_orders, place_order, update_order_status
from database import create_document, delete_document, get_db, get_document, get_documents, serialize_document, \
    update_document
from errors import NotFoundError, StoreError
from images import upload_image
from observability import setup_observability
from schemas import CategoryCreate, CategoryUpdate, OrderCreate, OrderStatusUpdate, ProductCreate, ProductUpdate

log = structlog.get_logger(__name__)

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_observability(app)


# Response envelope

_NO_DATA = object()


def respond(data: Any = _NO_DATA, status_code: int = 200, message: Optional[str] = None, **extra) -> JSONResponse:
    body = {"success": status_code < 400, "statusCode": status_code}
    if message is not None:
        body["message"] = message
    if data is not _NO_DATA:
        body["data"] = data
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def fail(status_code: int, message: str) -> JSONResponse:
    return respond(status_code=status_code, message=message)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return fail(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else err.get("msg", "invalid"))
    return fail(400, "; ".join(problems) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return fail(404, "Route not found")
    return fail(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    return fail(500, str(exc))


@app.get("/")
def read_root():
    return {"message": "Storefront API Running"}


@app.get("/api/health")
def health():
    response = {
        "backend": "running",
        "database": "not available",
        "collections": [],
    }
    if database.db is not None:
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "connected"
        except Exception as e:
            response["database"] = f"error: {str(e)[:50]}"
    response["databaseUrl"] = "set" if config.DATABASE_URL else "not set"
    response["databaseName"] = "set" if config.DATABASE_NAME else "not set"
    return respond(response)


# Products

PRODUCT = "product"
CATEGORY = "category"


@app.get("/api/products")
def list_products(request: Request, db: Database = Depends(get_db)):
    page = search_products(db, dict(request.query_params))
    return respond(
        [serialize_document(p) for p in page.items],
        meta={"page": page.page, "limit": page.limit, "total": page.total},
    )


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    product = get_document(db, PRODUCT, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return respond(serialize_document(product))


@app.post("/api/products")
def create_product(payload: ProductCreate, db: Database = Depends(get_db)):
    doc = payload.to_document()
    image = doc.pop("image", None)
    if image:
        doc["imageUrl"] = upload_image(image)
    product = create_document(db, PRODUCT, doc)
    log.info("product_created", product_id=str(product["_id"]))
    return respond(serialize_document(product), status_code=201)


@app.put("/api/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, db: Database = Depends(get_db)):
    product = update_document(db, PRODUCT, product_id, payload.to_document(partial=True))
    if product is None:
        raise NotFoundError("Product not found")
    return respond(serialize_document(product))


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, PRODUCT, product_id):
        raise NotFoundError("Product not found")
    log.info("product_deleted", product_id=product_id)
    return respond(message="Product removed")


# Categories

@app.get("/api/categories")
def list_categories(db: Database = Depends(get_db)):
    return respond([serialize_document(c) for c in get_documents(db, CATEGORY)])


@app.get("/api/categories/{category_id}")
def get_category(category_id: str, db: Database = Depends(get_db)):
    category = get_document(db, CATEGORY, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return respond(serialize_document(category))


@app.post("/api/categories")
def create_category(payload: CategoryCreate, db: Database = Depends(get_db)):
    doc = payload.to_document()
    image = doc.pop("image", None)
    if image:
        doc["imageUrl"] = upload_image(image)
    category = create_document(db, CATEGORY, doc)
    return respond(serialize_document(category), status_code=201)


@app.put("/api/categories/{category_id}")
def update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db)):
    category = update_document(db, CATEGORY, category_id, payload.to_document(partial=True))
    if category is None:
        raise NotFoundError("Category not found")
    return respond(serialize_document(category))


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: str, db: Database = Depends(get_db)):
    if not delete_document(db, CATEGORY, category_id):
        raise NotFoundError("Category not found")
    return respond(message="Category removed")


# Orders

@app.post("/api/orders")
def create_order(payload: OrderCreate, db: Database = Depends(get_db)):
    order = place_order(db, payload)
    return respond(get_order(db, str(order["_id"])), status_code=201)


@app.get("/api/orders")
def get_orders(db: Database = Depends(get_db)):
    return respond(list_orders(db))


@app.get("/api/orders/{order_id}")
def get_order_by_id(order_id: str, db: Database = Depends(get_db)):
    return respond(get_order(db, order_id))


@app.put("/api/orders/{order_id}")
def update_order(order_id: str, payload: OrderStatusUpdate, db: Database = Depends(get_db)):
    return respond(update_order_status(db, order_id, payload.status))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
