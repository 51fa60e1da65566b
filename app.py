from flask import Flask, request, jsonify, abort
from typing import Any, Dict, List, Tuple
from werkzeug.exceptions import HTTPException, BadRequest
from flask_cors import CORS
import click
import json
import logging
import os

from joltage import (
    ERROR_POLICIES,
    JoltageError,
    NotFoundError,
    WidthReport,
    read_bank_lines,
    parse_bank,
    report,
    select_max,
    solve_banks,
)


# ==========================
# App & Config
# ==========================
DEFAULT_WIDTHS = (2, 12)  # part one, part two


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, default))
    except Exception:
        return default


def _env_widths(key: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        widths = tuple(int(w) for w in raw.split(",") if w.strip())
    except ValueError:
        return default
    if not widths or any(w < 1 for w in widths):
        return default
    return widths


def _env_policy(key: str, default: str) -> str:
    policy = os.getenv(key, default).strip().lower()
    return policy if policy in ERROR_POLICIES else default


PORT = _env_int("PORT", 5000)
HOST = os.getenv("HOST", "0.0.0.0")
MAX_CONTENT_LENGTH = _env_int("MAX_CONTENT_LENGTH", 8_000_000)  # 8MB safety cap
WIDTHS = _env_widths("JOLTAGE_WIDTHS", DEFAULT_WIDTHS)
BANK_ERROR_POLICY = _env_policy("BANK_ERROR_POLICY", "abort")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
CORS(app)


# ==========================
# JSON Logging
# ==========================
class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "name": record.name,
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base)


def configure_logging(level: str = LOG_LEVEL) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    lvl = getattr(logging, level, logging.INFO)
    for lg in (app.logger, logging.getLogger("joltage")):
        lg.setLevel(lvl)
        lg.handlers.clear()
        lg.addHandler(handler)


configure_logging()


# ==========================
# Lightweight validation
# ==========================
def _is_int(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


def _parse_widths(payload: Dict[str, Any]) -> List[int]:
    if "widths" in payload:
        widths = payload["widths"]
        if not isinstance(widths, list) or not widths or not all(_is_int(w) and w >= 1 for w in widths):
            raise BadRequest("widths must be a non-empty list of integers >= 1")
        return widths
    if "width" in payload:
        if not _is_int(payload["width"]) or payload["width"] < 1:
            raise BadRequest("width must be an integer >= 1")
        return [payload["width"]]
    return list(WIDTHS)


def _parse_banks_payload(payload: Any) -> Tuple[List[str], List[int], str]:
    """
    Accept either a bare list of bank strings or
    {"banks": [...], "widths": [...] | "width": k, "onError": "abort"|"skip"}.
    Returns (banks, widths, policy); raises BadRequest on bad shapes.
    """
    if isinstance(payload, list):
        banks, widths, policy = payload, list(WIDTHS), BANK_ERROR_POLICY
    elif isinstance(payload, dict):
        banks = payload.get("banks")
        if not isinstance(banks, list):
            raise BadRequest("Missing 'banks' list in object payload")
        widths = _parse_widths(payload)
        policy = str(payload.get("onError", BANK_ERROR_POLICY)).strip().lower()
        if policy not in ERROR_POLICIES:
            raise BadRequest(f"onError must be one of {', '.join(ERROR_POLICIES)}")
    else:
        raise BadRequest("Payload must be a list of banks or an object with 'banks'")

    if not banks:
        raise BadRequest("banks must not be empty")
    for idx, bank in enumerate(banks):
        if not isinstance(bank, str):
            raise BadRequest(f"banks[{idx}] must be a string of digits")
    return banks, widths, policy


def _read_json() -> Any:
    # Content-Type guard so a form post doesn't surface as a JSON decode error
    if not request.content_type or "application/json" not in request.content_type.lower():
        abort(415, "Content-Type must be application/json")
    try:
        return request.get_json(silent=False, force=False)
    except BadRequest:
        app.logger.exception("json_parse_error")
        raise BadRequest("Invalid JSON payload")


def _picks(selection) -> List[Dict[str, int]]:
    return [{"value": p.value, "index": p.index} for p in selection]


def _width_result(rep: WidthReport, debug: bool) -> Dict[str, Any]:
    out = {
        "width": rep.width,
        "joltages": rep.joltages,
        "total": rep.total,
        # zero-based, matching the request's banks list
        "skipped": [{"bank": line - 1, "error": msg} for line, msg in rep.skipped],
    }
    if debug:
        out["selections"] = [_picks(s) for s in rep.selections]
    return out


# ==========================
# Error handlers
# ==========================
@app.errorhandler(HTTPException)
def http_error(e: HTTPException):
    return jsonify({"error": e.description, "status": e.code}), e.code


@app.errorhandler(JoltageError)
def joltage_error(e: JoltageError):
    body: Dict[str, Any] = {"error": str(e), "kind": type(e).__name__}
    if e.line_number is not None:
        body["bank"] = e.line_number - 1
    app.logger.info(json.dumps({"validation_error": str(e), "kind": body["kind"]}))
    return jsonify(body), 400


# ==========================
# Routes
# ==========================
@app.route("/health", methods=["GET"])
def health():
    return jsonify({"ok": True})


## BATTERY BANKS
@app.route("/battery-banks", methods=["POST"])
def battery_banks():
    """
    Expected request body (application/json):
    {
      "banks": ["987654321111111", "811111111111119"],
      "widths": [2, 12],
      "onError": "abort"
    }
    or just ["987654321111111", ...] with the configured widths.

    Responds with one result per width:
    {"results": [{"width": 2, "joltages": [98, 89], "total": 187, "skipped": []}, ...]}
    """
    banks, widths, policy = _parse_banks_payload(_read_json())
    debug = request.args.get("debug") in ("1", "true", "yes")

    results = [_width_result(solve_banks(banks, k, on_error=policy), debug) for k in widths]
    return jsonify({"results": results}), 200


@app.route("/battery-banks/select", methods=["POST"])
def battery_bank_select():
    """
    {"sequence": "818181911112111", "k": 12}  (sequence may also be a list of digits)
    -> {"result": 888911112111, "digits": [...], "picks": [{"value": 8, "index": 0}, ...]}
    """
    payload = _read_json()
    if not isinstance(payload, dict):
        raise BadRequest("Payload must be an object with 'sequence' and 'k'")

    seq = payload.get("sequence")
    k = payload.get("k")
    if isinstance(seq, str):
        seq = parse_bank(seq)
    elif not isinstance(seq, list):
        raise BadRequest("sequence must be a digit string or a list of digits")
    if not _is_int(k):
        raise BadRequest("k must be an integer")

    selection = select_max(seq, k)
    return jsonify({
        "result": selection.value,
        "digits": selection.digits,
        "picks": _picks(selection),
    }), 200


# ==========================
# CLI
# ==========================
@app.cli.command("solve")
@click.argument("path")
@click.option(
    "--width",
    "-k",
    "widths",
    type=click.IntRange(min=1),
    multiple=True,
    help="Joltage width to solve for; repeat for several. Defaults to JOLTAGE_WIDTHS.",
)
@click.option(
    "--on-error",
    type=click.Choice(ERROR_POLICIES),
    default=BANK_ERROR_POLICY,
    show_default=True,
    help="Abort on the first bad bank, or skip it and keep summing.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Label each total with its width and report skipped banks.",
)
def solve_command(path: str, widths: Tuple[int, ...], on_error: str, verbose: bool):
    """Print the total output joltage of every bank in PATH, one line per width."""
    try:
        lines = read_bank_lines(path)
    except NotFoundError as e:
        raise click.FileError(path, hint=str(e))
    except OSError as e:
        raise click.FileError(path, hint=e.strerror or str(e))
    except JoltageError as e:
        raise click.ClickException(str(e))

    for k in widths or WIDTHS:
        try:
            rep = solve_banks(lines, k, on_error=on_error)
        except JoltageError as e:
            raise click.ClickException(str(e))
        if verbose:
            click.echo(f"width={k} total={rep.total} banks={len(rep.joltages)} skipped={len(rep.skipped)}")
        else:
            report(rep.total)


if __name__ == "__main__":
    app.run(host=HOST, port=PORT, debug=False)
