"""
配置流程的异常类型。

库代码只抛出这些类型化异常；由 CLI 统一转换成 `SystemExit("Error: ...")`。
"""


class NsBundleConfigError(RuntimeError):
    """所有配置流程异常的基类。"""


class NotPublishedError(NsBundleConfigError):
    """上下文缺少发布地址（published url），流程无法开始。"""


class MissingBundleIdentifierError(NsBundleConfigError):
    """应用配置未声明 `ios.bundleIdentifier`。"""


class DocumentReadError(NsBundleConfigError):
    """文档存在但无法解析为 plist 字典。"""


class DocumentWriteError(NsBundleConfigError):
    """文档无法完整写回磁盘；磁盘上保留原内容。"""


class CollaboratorError(NsBundleConfigError):
    """外部协作步骤（图标、资源归档、启动屏等）失败。"""


class ResourceFetchError(CollaboratorError):
    """远程资源下载失败。"""
