import logging
import os
import jwt

from servicehub.common.models.users import UserRole

logger = logging.getLogger(__name__)

JWT_SECRET = os.environ.get("JWT_SECRET")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")


def _generate_policy(principal_id, effect, resource, context=None):
    auth_response = {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
    }

    if context:
        # API Gateway only passes string, number or boolean context values
        auth_response["context"] = {k: str(v) for k, v in context.items()}

    return auth_response


def _get_stage_arn(method_arn: str) -> str:
    parts = method_arn.split("/")
    return "/".join(parts[:2]) + "/*/*"


def _bearer_token(event) -> str:
    headers = event.get("headers") or {}
    token = (
        headers.get("Authorization")
        or headers.get("authorization")
        or event.get("authorizationToken")
    )
    if not token:
        raise PermissionError("Missing Authorization header")
    if token.startswith("Bearer "):
        token = token[len("Bearer "):]
    return token


def lambda_handler(event, context):
    try:
        decoded = jwt.decode(
            _bearer_token(event),
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp"]},
        )

        user_id = decoded.get("user_id")
        if not user_id:
            raise PermissionError("Missing user_id in token")

        role = UserRole(str(decoded.get("role", "")).upper())
        is_active = decoded.get("is_active", True)
        if is_active is False:
            raise PermissionError(f"User {user_id} is deactivated")

        return _generate_policy(
            principal_id=user_id,
            effect="Allow",
            resource=_get_stage_arn(event["methodArn"]),
            context={
                "user_id": user_id,
                "email": decoded.get("email", ""),
                "role": role.value,
                "is_active": "true",
            },
        )

    except jwt.ExpiredSignatureError:
        logger.info("Authorization failed: token expired")
    except jwt.InvalidTokenError as e:
        logger.info(f"Authorization failed: invalid token ({e})")
    except ValueError:
        logger.info("Authorization failed: unknown role")
    except PermissionError as e:
        logger.info(f"Authorization failed: {e}")
    except Exception:
        logger.exception("Authorization failed")

    return _generate_policy(
        principal_id="unauthorized",
        effect="Deny",
        resource=_get_stage_arn(event["methodArn"]),
    )
