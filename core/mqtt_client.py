import json
import ssl
import asyncio
import logging
from typing import Optional

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from models.reading_model import ReadingSubmission
from .config import MQTT_BROKER, MQTT_PORT, MQTT_USERNAME, MQTT_PASSWORD, MQTT_TOPIC, MQTT_TLS
from .errors import ReadingError
from .ingestion import ReadingService, get_reading_service
from .websocket_manager import bind_loop, broadcast_threadsafe, reading_event

logger = logging.getLogger(__name__)
mqtt_client: Optional[mqtt.Client] = None


def is_connected() -> bool:
    return bool(mqtt_client and mqtt_client.is_connected())


def device_from_topic(topic: str) -> Optional[str]:
    """airwise/<device_id>/readings -> <device_id>"""
    parts = topic.split("/")
    if len(parts) >= 3 and parts[1]:
        return parts[1]
    return None


def process_reading_message(topic: str, raw_payload: bytes, service: ReadingService):
    """
    Ingest one MQTT message. Expected payload format (same body as POST /readings):
    {
        "device_id": "airwise-kitchen-01",   # optional, taken from the topic when missing
        "client_id": "gateway-7",
        "temperature": 22.4,
        "humidity": 48.1,
        "pm25": 12.0,
        "co2": 640
    }
    Returns the stored reading, or None when the message was rejected.
    """
    try:
        payload = json.loads(raw_payload.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"❌ JSON decode error on {topic}: {e}")
        return None
    if not isinstance(payload, dict):
        logger.error(f"❌ Ignoring non-object payload on {topic}")
        return None

    if not payload.get("device_id"):
        payload["device_id"] = device_from_topic(topic)

    try:
        submission = ReadingSubmission.model_validate(payload)
        reading = service.ingest(submission)
    except ValidationError as e:
        logger.error(f"❌ Malformed reading on {topic}: {e.error_count()} validation error(s)")
        return None
    except ReadingError as e:
        logger.warning(f"Rejected MQTT reading on {topic} ({e.kind}): {e.message}")
        return None

    broadcast_threadsafe(reading_event(reading.model_dump(mode="json")))
    return reading


async def connect_mqtt():
    """Connect to MQTT broker and subscribe to the readings topic"""
    global mqtt_client

    bind_loop(asyncio.get_running_loop())
    service = get_reading_service()

    def on_connect(client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Failed to connect to MQTT: {reason_code}")
            logger.error(f"🔧 Debug - Username used: '{MQTT_USERNAME}', Broker: {MQTT_BROKER}:{MQTT_PORT}")
            return
        logger.info("✅ Connected to MQTT Broker")
        client.subscribe(MQTT_TOPIC)
        logger.info(f"📡 Subscribed to topic: {MQTT_TOPIC}")

    def on_message(client, userdata, msg):
        logger.info(f"📨 Received MQTT message from topic: {msg.topic}")
        try:
            process_reading_message(msg.topic, msg.payload, service)
        except Exception as e:
            # Keep the network thread alive
            logger.error(f"❌ MQTT processing error: {e}", exc_info=True)

    mqtt_client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

    if MQTT_TLS:
        try:
            mqtt_client.tls_set(cert_reqs=ssl.CERT_REQUIRED)
            logger.info("🔒 TLS configured")
        except (ValueError, ssl.SSLError) as e:
            logger.error(f"❌ TLS configuration error: {e}")
            return

    if MQTT_USERNAME and MQTT_PASSWORD:
        mqtt_client.username_pw_set(MQTT_USERNAME, MQTT_PASSWORD)
        logger.info(f"🔑 Using MQTT credentials - Username: '{MQTT_USERNAME}'")

    mqtt_client.on_connect = on_connect
    mqtt_client.on_message = on_message

    try:
        logger.info(f"🔗 Attempting MQTT connection to {MQTT_BROKER}:{MQTT_PORT}")
        mqtt_client.connect(MQTT_BROKER, MQTT_PORT, 60)
        mqtt_client.loop_start()
    except OSError as e:
        logger.error(f"❌ MQTT connection exception: {e}")


def disconnect_mqtt():
    if mqtt_client is not None:
        mqtt_client.loop_stop()
        mqtt_client.disconnect()
        logger.info("MQTT client disconnected")
