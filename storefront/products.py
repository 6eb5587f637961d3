# storefront/products.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .schemas import ProductOut
from . import crud

router = APIRouter(tags=["products"])

@router.get("/products", response_model=List[ProductOut])
async def list_products(name_like: str = Query("", description="substring of name or overview"),
                        db: AsyncSession = Depends(get_db)):
    return await crud.list_products(db, name_like.strip())

@router.get("/products/{product_id}", response_model=ProductOut)
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product

@router.get("/featured-products", response_model=List[ProductOut])
async def list_featured_products(db: AsyncSession = Depends(get_db)):
    return await crud.list_featured_products(db)
