"""命令行：用 MinerU 提取单个本地文件的内容。

JSON 结果打印到 stdout（或写入 --output）；ZIP 结果解码后写入磁盘；非 JSON 的原始字节原样输出。
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import sys
from pathlib import Path
from typing import Any

import httpx

from mineru_extract.application.actions.document_extraction import extract_document
from mineru_extract.application.schemas.mineru import (
    DEFAULT_END_PAGE_ID,
    DEFAULT_START_PAGE_ID,
    MinerUBackend,
    MinerUExtractionParams,
    MinerUFilePayload,
    MinerUParseMethod,
)
from mineru_extract.shared.config import get_settings
from mineru_extract.shared.errors import AppError
from mineru_extract.shared.logging import configure_logging
from mineru_extract.shared.request_id import request_id_scope


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mineru-extract",
        description="Extract the content of a document with MinerU",
    )
    parser.add_argument("file", type=Path, help="待解析的本地文件")
    parser.add_argument(
        "--api-server-url",
        default="",
        help="MinerU API 地址（默认：MINERU_EXTRACT_MINERU_API_URL）",
    )
    parser.add_argument("--lang-list", default="", help="文档语言，仅 pipeline 后端生效")
    parser.add_argument(
        "--backend",
        default=MinerUBackend.VLM_HTTP_CLIENT.value,
        choices=[b.value for b in MinerUBackend],
    )
    parser.add_argument("--backend-server-url", default=None, help="仅 vlm-http-client 后端")
    parser.add_argument(
        "--parse-method",
        default=MinerUParseMethod.AUTO.value,
        choices=[m.value for m in MinerUParseMethod],
    )
    parser.add_argument("--formula", action=argparse.BooleanOptionalAction, default=True)
    parser.add_argument("--table", action=argparse.BooleanOptionalAction, default=True)
    parser.add_argument("--md", action=argparse.BooleanOptionalAction, default=True)
    parser.add_argument("--middle-json", action=argparse.BooleanOptionalAction, default=False)
    parser.add_argument("--model-output", action=argparse.BooleanOptionalAction, default=False)
    parser.add_argument("--content-list", action=argparse.BooleanOptionalAction, default=False)
    parser.add_argument("--images", action=argparse.BooleanOptionalAction, default=False)
    parser.add_argument("--zip", action="store_true", help="以 ZIP 形式返回结果")
    parser.add_argument("--start-page", type=int, default=DEFAULT_START_PAGE_ID)
    parser.add_argument("--end-page", type=int, default=DEFAULT_END_PAGE_ID)
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="结果输出路径（ZIP 默认写到当前目录，JSON 默认打印）",
    )
    parser.add_argument("--log-level", default=None, help="日志级别（默认取配置）")
    return parser


def params_from_args(args: argparse.Namespace, api_server_url: str) -> MinerUExtractionParams:
    path: Path = args.file
    return MinerUExtractionParams(
        api_server_url=api_server_url,
        file=MinerUFilePayload(
            filename=path.name,
            extension=path.suffix[1:] or None,
            data=path.read_bytes(),
        ),
        lang_list=args.lang_list,
        backend=args.backend,
        backend_server_url=args.backend_server_url,
        parse_method=args.parse_method,
        formula_enable=args.formula,
        table_enable=args.table,
        return_md=args.md,
        return_middle_json=args.middle_json,
        return_model_output=args.model_output,
        return_content_list=args.content_list,
        return_images=args.images,
        response_format_zip=args.zip,
        start_page_id=args.start_page,
        end_page_id=args.end_page,
    )


def write_result(result: Any, *, zip_requested: bool, output: Path | None) -> Path | None:
    if zip_requested:
        target = output or Path(result["filename"])
        target.write_bytes(base64.b64decode(result["data"]))
        return target

    if isinstance(result, bytes):
        if output is None:
            sys.stdout.buffer.write(result)
            sys.stdout.buffer.flush()
            return None
        output.write_bytes(result)
        return output

    text = json.dumps(result, ensure_ascii=False, indent=2)
    if output is None:
        print(text)
        return None
    output.write_text(text, encoding="utf-8")
    return output


async def _run(argv: list[str] | None = None, http_client: httpx.AsyncClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if not args.file.is_file():
        print(f"[ERROR] file not found: {args.file}", file=sys.stderr)
        return 2

    api_server_url = args.api_server_url or settings.mineru_api_url
    if not api_server_url:
        print(
            "[ERROR] --api-server-url is required (or set MINERU_EXTRACT_MINERU_API_URL)",
            file=sys.stderr,
        )
        return 2

    params = params_from_args(args, api_server_url)
    with request_id_scope():
        try:
            result = await extract_document(params, http_client=http_client)
        except AppError as exc:
            print(f"[ERROR] {exc.code}: {exc.message}", file=sys.stderr)
            return 1
        except httpx.RequestError as exc:
            print(f"[ERROR] network error: {exc!r}", file=sys.stderr)
            return 1

    written = write_result(result, zip_requested=params.response_format_zip, output=args.output)
    if written is not None:
        print(f"[DONE] {written}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(_run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
