from joserfc.jwk import OctKey

from ..config import settings

# Tokens are issued elsewhere; this service only verifies them
key = OctKey.import_key(settings.jwt.secret_key)
