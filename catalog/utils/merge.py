from catalog.schemas.products import Product, ProductUpdate


def swap_out_blank_fields(update: ProductUpdate, current: Product) -> Product:
    """
    Merge a partial update onto the stored product.

    Strings that are missing or blank after stripping keep the current
    value; numbers only fall back when missing, so 0 is a real value.
    """
    title = (update.title or "").strip() or current.title
    description = (update.description or "").strip() or current.description

    return Product(
        id=current.id,
        title=title,
        description=description,
        price=update.price if update.price is not None else current.price,
        stock=update.stock if update.stock is not None else current.stock,
    )
