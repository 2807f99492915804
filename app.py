"""
Bundle Builder - volume tier discount service
HTTP wrapper around the bundle pricing engine

Features:
- Tiered percentage, fixed amount and fixed bundle price discounts
- Configuration diagnostics for merchants
- Business purchasers and subscription lines excluded
"""

# ---- Imports ----
import logging
from flask import Flask, request

# Import our custom modules
from config import Config
from pricing import BundlePricingEngine, run
from validators import parse_bundle_config, validate_bundle_config

# ---- Logging Configuration ----
logging.basicConfig(
    level=logging.INFO if not Config.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ---- Validate Configuration ----
try:
    Config.validate()
    Config.log_config()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    logger.warning("Some features may not work correctly")

# ---- Flask App ----
app = Flask(__name__)


# ---- Health Check Endpoint ----
@app.route("/", methods=["GET"])
def home():
    """Health check endpoint"""
    return {
        "status": "online",
        "service": Config.SERVICE_NAME,
        "version": Config.VERSION,
        "features": {
            "allow_negative_bundle_discount": Config.ALLOW_NEGATIVE_BUNDLE_DISCOUNT,
        },
        "endpoints": {
            "evaluate": "/discounts/evaluate (POST)",
            "validate": "/discounts/validate (POST)"
        }
    }, 200


# ---- Discount Endpoints ----
@app.route("/discounts/evaluate", methods=["POST"])
def evaluate_discounts():
    """Evaluate a cart against the bundle configuration in the request"""
    payload = request.get_json(silent=True)
    if payload is None:
        logger.warning(f"Rejected non-JSON evaluation request from {request.remote_addr}")
        return {"error": "Request body must be JSON"}, 400

    try:
        result = run(
            payload,
            allow_negative_discount=Config.ALLOW_NEGATIVE_BUNDLE_DISCOUNT,
            default_title=Config.DEFAULT_BUNDLE_TITLE,
        )
    except Exception as e:
        logger.error(f"Error evaluating discounts: {e}", exc_info=True)
        return {"error": "Discount evaluation failed"}, 500

    logger.info(f"Evaluated cart: {len(result.discounts)} discount(s), strategy {result.strategy.value}")
    return result.to_dict(), 200


@app.route("/discounts/validate", methods=["POST"])
def validate_configuration():
    """Report problems with a bundle configuration"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Request body must be a JSON object"}, 400

    raw_config = payload.get("configuration")
    issues = validate_bundle_config(raw_config)

    config = parse_bundle_config(raw_config, default_title=Config.DEFAULT_BUNDLE_TITLE)
    summary = BundlePricingEngine(config).get_tier_summary()

    return {
        "valid": not issues,
        "issues": issues,
        "summary": summary
    }, 200


# ---- Run Flask App ----
if __name__ == "__main__":
    logger.info(f"Starting {Config.SERVICE_NAME} service...")
    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)
