import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo import DESCENDING, ReturnDocument

import config
import coupons
from database import (
    ORDERS,
    PRODUCTS,
    SLIDES,
    USERS,
    connect,
    create_document,
    get_db,
    parse_object_id,
    to_dict,
)
from errors import NotFoundError, StoreConnectionError, ValidationError, register_error_handlers
from media import get_uploader
from schemas import (
    CreateCouponRequest,
    Order,
    Product,
    Slide,
    SlideUpdate,
    UploadRequest,
    UserLogin,
    VerifyCouponRequest,
)

config.configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = None
    # a handle placed on app.state beforehand (tests, scripts) is used as is
    if getattr(app.state, "db", None) is None:
        try:
            client, app.state.db = connect()
        except StoreConnectionError:
            logger.exception("MongoDB connection failed")
            raise
    yield
    if client is not None:
        client.close()
        app.state.db = None


app = FastAPI(title="Robe Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/", response_class=PlainTextResponse)
def root():
    return "E-Commerce of Robe by Shomshed is running.."


# Upload image to the media host
@app.post("/upload")
def upload_image(payload: UploadRequest, upload=Depends(get_uploader)):
    if not payload.image:
        raise ValidationError("No image provided")
    url = upload(payload.image)
    return {"success": True, "url": url}


# Products CRUD
@app.post("/products")
def create_product(p: Product, db=Depends(get_db)):
    doc = p.model_dump(exclude_unset=True)
    doc.pop("_id", None)
    doc.pop("id", None)
    res = db[PRODUCTS].insert_one(doc)
    logger.info("Product %s created", res.inserted_id)
    return {"success": True, "result": {"acknowledged": res.acknowledged, "insertedId": str(res.inserted_id)}}


@app.get("/products")
def list_products(db=Depends(get_db)):
    products = [to_dict(p) for p in db[PRODUCTS].find()]
    return {"success": True, "products": products}


@app.get("/products/{product_id}")
def get_product(product_id: str, db=Depends(get_db)):
    doc = db[PRODUCTS].find_one({"_id": parse_object_id(product_id)})
    if not doc:
        raise NotFoundError("Product not found")
    return {"success": True, "product": to_dict(doc)}


@app.put("/products/{product_id}")
def update_product(product_id: str, payload: Product, db=Depends(get_db)):
    oid = parse_object_id(product_id)
    updates = payload.model_dump(exclude_unset=True)
    updates.pop("_id", None)
    updates.pop("id", None)
    if not updates:
        raise ValidationError("No fields to update")
    res = db[PRODUCTS].update_one({"_id": oid}, {"$set": updates})
    if res.matched_count == 0:
        raise NotFoundError("Product not found")
    return {"success": True}


@app.delete("/products/{product_id}")
def delete_product(product_id: str, db=Depends(get_db)):
    res = db[PRODUCTS].delete_one({"_id": parse_object_id(product_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Product not found")
    logger.info("Product %s deleted", product_id)
    return {"success": True}


# Orders
@app.post("/orders", status_code=201)
def create_order(order: Order, db=Depends(get_db)):
    order_id = coupons.place_order(db, order)
    return {"success": True, "orderId": order_id}


@app.get("/orders")
def list_orders(db=Depends(get_db)):
    return [to_dict(o) for o in db[ORDERS].find().sort("createdAt", DESCENDING)]


# Coupons
@app.post("/coupons", status_code=201)
def create_coupon(payload: CreateCouponRequest, db=Depends(get_db)):
    return coupons.create_coupon(db, payload)


@app.post("/verify-coupon")
def verify_coupon(payload: VerifyCouponRequest, db=Depends(get_db)):
    return coupons.verify_coupon(db, payload.code.strip(), payload.user_email)


@app.get("/coupons")
def list_coupons(db=Depends(get_db)):
    return {"success": True, "coupons": coupons.list_coupons(db)}


@app.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str, db=Depends(get_db)):
    coupons.delete_coupon(db, coupon_id)
    return {"success": True, "message": "Coupon deleted"}


# Users
@app.post("/users")
def login_user(payload: UserLogin, db=Depends(get_db)):
    now = datetime.utcnow()
    profile = payload.model_dump(exclude={"email"})
    profile.pop("_id", None)
    profile.pop("lastLogin", None)
    profile["createdAt"] = now
    res = db[USERS].update_one(
        {"email": payload.email},
        {"$set": {"lastLogin": now}, "$setOnInsert": profile},
        upsert=True,
    )
    if res.upserted_id is not None:
        logger.info("User %s created", payload.email)
        return JSONResponse(
            status_code=201,
            content={"success": True, "message": "User created", "insertedId": str(res.upserted_id)},
        )
    return {"success": True, "message": "User login updated"}


@app.get("/users")
def list_users(db=Depends(get_db)):
    return {"success": True, "users": [to_dict(u) for u in db[USERS].find()]}


@app.get("/users/role/{email}")
def get_user_role(email: str, db=Depends(get_db)):
    user = db[USERS].find_one({"email": email}, {"role": 1})
    if not user:
        return JSONResponse(status_code=404, content={"role": None})
    return {"role": user.get("role")}


# Slides
@app.get("/slides")
def list_slides(db=Depends(get_db)):
    return [to_dict(s) for s in db[SLIDES].find().sort("createdAt", DESCENDING)]


@app.post("/slides", status_code=201)
def create_slide(slide: Slide, db=Depends(get_db)):
    slide_id = create_document(db, SLIDES, slide.model_dump())
    logger.info("Slide %s created", slide_id)
    return to_dict(db[SLIDES].find_one({"_id": parse_object_id(slide_id)}))


@app.get("/slides/{slide_id}")
def get_slide(slide_id: str, db=Depends(get_db)):
    doc = db[SLIDES].find_one({"_id": parse_object_id(slide_id)})
    if not doc:
        raise NotFoundError("Slide not found")
    return to_dict(doc)


@app.put("/slides/{slide_id}")
def update_slide(slide_id: str, payload: SlideUpdate, db=Depends(get_db)):
    oid = parse_object_id(slide_id)
    updates = {k: v for k, v in payload.model_dump().items() if v is not None}
    if not updates:
        raise ValidationError("No fields to update")
    doc = db[SLIDES].find_one_and_update(
        {"_id": oid}, {"$set": updates}, return_document=ReturnDocument.AFTER
    )
    if not doc:
        raise NotFoundError("Slide not found")
    return to_dict(doc)


@app.delete("/slides/{slide_id}")
def delete_slide(slide_id: str, db=Depends(get_db)):
    res = db[SLIDES].delete_one({"_id": parse_object_id(slide_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Slide not found")
    logger.info("Slide %s deleted", slide_id)
    return {"success": True, "message": "Slide deleted"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
