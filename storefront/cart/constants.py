from storefront.common.logging_setup import get_logger
from storefront.config.settings import config_settings

logger = get_logger("storefront.cart")

MAX_ITEM_QTY = config_settings.CART_MAX_ITEM_QTY
PACK_SIZE_MAX_LEN = 64
GUEST_CART_COOKIE = config_settings.GUEST_CART_COOKIE
