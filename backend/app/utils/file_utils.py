"""
文件存储工具
---------------------------------
功能：
- 校验前端上传的图片（扩展名、大小）
- 保存图片到 `uploads/<category>/` 目录
- 返回绝对路径（用于文件操作）和相对路径（用于存储到数据库和前端访问）
- 提供文件删除功能，用于清理不再使用的文件（包括写库失败后的补偿清理）

图片存储策略：
- 图片文件存储在服务器磁盘：uploads/<category>/
- 数据库中存储相对路径（如：/uploads/feedback/uuid_file.png）
- 命名规则：<uuid>_<原文件名>，避免重名覆盖

后续扩展：
- 可接入对象存储（如 S3、OSS），在此处替换落盘逻辑即可
"""

from pathlib import Path
from uuid import uuid4
from typing import Iterable, List, Literal, Tuple

from fastapi import UploadFile

from ..config import settings
from .errors import InvalidInputError
from .logger import log

UploadCategory = Literal["feedback", "profiles"]


def _target_dir(category: UploadCategory) -> Path:
    """根据类别返回目标上传目录"""
    dir_map = {
        "feedback": settings.FEEDBACK_UPLOAD_DIR,
        "profiles": settings.PROFILE_UPLOAD_DIR,
    }
    return dir_map[category]


def _check_extension(filename: str) -> None:
    ext = Path(filename).suffix.lower().lstrip(".")
    if ext not in settings.ALLOWED_IMAGE_EXTENSIONS:
        allowed = ", ".join(sorted(settings.ALLOWED_IMAGE_EXTENSIONS))
        raise InvalidInputError(f"Unsupported image type '{ext or filename}', allowed: {allowed}")


def uploaded_files(files: Iterable[UploadFile] | None) -> List[UploadFile]:
    """过滤掉表单中未选择文件的空项"""
    return [f for f in (files or []) if f is not None and f.filename]


async def save_upload_file(file: UploadFile, category: UploadCategory) -> Tuple[Path, str]:
    """保存上传文件到对应目录。

    Args:
        file: 上传的文件对象
        category: 文件类别（feedback/profiles）

    Returns:
        Tuple[Path, str]: (绝对路径, 相对路径)

    Raises:
        InvalidInputError: 扩展名不支持或文件过大
    """
    original_name = Path(file.filename or "upload.bin").name
    _check_extension(original_name)

    content = await file.read()
    if len(content) > settings.MAX_IMAGE_BYTES:
        raise InvalidInputError(f"Image '{original_name}' exceeds {settings.MAX_IMAGE_BYTES // (1024 * 1024)}MB")

    target = _target_dir(category)
    target.mkdir(parents=True, exist_ok=True)

    safe_name = f"{uuid4().hex}_{original_name}"
    save_path = target / safe_name

    with save_path.open("wb") as out:
        out.write(content)

    # 生成相对路径（用于前端访问）
    relative_path = f"/uploads/{category}/{safe_name}"

    return save_path.resolve(), relative_path


async def save_images(files: List[UploadFile], category: UploadCategory) -> List[str]:
    """批量保存图片；任一张失败时删除本批已落盘的文件再抛出。

    Returns:
        相对路径列表
    """
    stored: List[str] = []
    try:
        for f in files:
            _, relative_path = await save_upload_file(f, category)
            stored.append(relative_path)
    except Exception:
        delete_upload_files(stored)
        raise
    return stored


def delete_upload_file(relative_path: str) -> bool:
    """删除上传的文件

    Args:
        relative_path: 相对路径（如：/uploads/feedback/uuid_file.png）

    Returns:
        bool: 是否删除成功
    """
    try:
        if relative_path.startswith("/uploads/"):
            file_path = settings.UPLOAD_DIR / relative_path.replace("/uploads/", "", 1)

            if file_path.exists() and file_path.is_file():
                file_path.unlink()
                return True
        return False
    except OSError as e:
        log.error(f"删除文件失败: {relative_path}, 错误: {e}")
        return False


def delete_upload_files(relative_paths: Iterable[str]) -> int:
    """批量删除，返回实际删除的数量"""
    return sum(1 for p in relative_paths if delete_upload_file(p))
