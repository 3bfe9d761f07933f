from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from storecart.models.productModel import Product
from storecart.models.cartModel import Cart
from storecart.models.userModel import User
from storecart.models.reconciliationModel import CheckoutReconciliation
from .settings import settings

DOCUMENT_MODELS = [User, Product, Cart, CheckoutReconciliation]


# Call this from within your event loop to get beanie setup.
async def startDB():
    # Create Motor client
    client = AsyncIOMotorClient(settings.MONGO_URI, uuidRepresentation="standard")
    database = client[settings.MONGO_DATABASE]

    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    return client
