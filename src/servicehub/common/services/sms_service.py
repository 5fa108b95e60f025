import boto3
import logging
from botocore.exceptions import BotoCoreError, ClientError

from servicehub.common.utils.constants import DEFAULT_COUNTRY_CODE
from servicehub.common.utils.custom_exceptions import SmsDeliveryError

logger = logging.getLogger(__name__)


class SmsService:
    def __init__(self, region="ap-south-1", country_code: str = DEFAULT_COUNTRY_CODE):
        self.client = boto3.client("sns", region_name=region)
        self.country_code = country_code

    def format_phone_number(self, phone_number: str) -> str:
        phone_number = str(phone_number).strip()
        if phone_number.startswith("+"):
            return phone_number
        return f"{self.country_code}{phone_number}"

    def send(self, phone_number: str, message: str):
        to = self.format_phone_number(phone_number)

        try:
            response = self.client.publish(
                PhoneNumber=to,
                Message=message,
                MessageAttributes={
                    "AWS.SNS.SMS.SMSType": {
                        "DataType": "String",
                        "StringValue": "Transactional",
                    }
                },
            )
        except (BotoCoreError, ClientError) as err:
            # message bodies can carry one-time codes, so only the error is logged
            code = type(err).__name__
            if isinstance(err, ClientError):
                code = err.response.get("Error", {}).get("Code")
            logger.error(f"Error sending SMS to *****{to[-4:]}: {code}")
            raise SmsDeliveryError("Failed to send SMS. Please try again later.") from err

        logger.info(f"SMS sent to *****{to[-4:]}")
        return response.get("MessageId")
