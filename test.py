import tempfile

from filedrop.domain.files import format_size_mb, load_served_file
from filedrop.domain.tokens import generate_access_token, tokens_match
from filedrop.service.ledger import ClientLedger

token = generate_access_token()  # 8 base-36 chars unless FILEDROP_TOKEN_LENGTH is set
tokens_match(token, token)  # True
tokens_match(token.upper(), token)  # False

with tempfile.NamedTemporaryFile(suffix=".bin") as fh:
    fh.write(b"\0" * 3_145_728)
    fh.flush()
    served = load_served_file(fh.name)
    served.display_name  # base name only
    served.download_path  # /download/<token>
    format_size_mb(served.size_bytes)  # "3.00"

# Repeat visits from one client count up
ledger = ClientLedger()
ledger.record_hit("203.0.113.7", "curl/8.5.0")  # 1
ledger.record_hit("203.0.113.7", "curl/8.5.0")  # 2
ledger.record_hit("203.0.113.7", None)  # 1, user agent becomes "unknown"
