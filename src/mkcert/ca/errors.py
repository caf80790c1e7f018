"""
证书签发引擎的错误类型。

校验类错误同时继承 ValueError，运行期失败同时继承 RuntimeError，
文件类错误继承对应的 OSError 子类，调用方按内置异常捕获也能正常工作。
"""


class MkcertError(Exception):
    """所有 mkcert 错误的基类。"""


class ConfigError(MkcertError, ValueError):
    """模板文件无法读取或格式错误。"""


class ValidationError(MkcertError, ValueError):
    """请求内容不合法（文件扩展名、名称等）。"""


class EncodingError(ValidationError):
    """名称属性无法按 X.509 编码。"""


class ExtensionError(MkcertError, ValueError):
    """扩展项无法构建，例如 SAN 不是合法的 DNS 名称。"""


class KeyGenerationError(MkcertError, RuntimeError):
    """密钥对生成失败。"""


class SigningError(MkcertError, RuntimeError):
    """签名失败。"""


class BundleError(MkcertError, RuntimeError):
    """PKCS#12 打包失败，例如私钥与证书不匹配。"""


class PassphraseError(MkcertError, ValueError):
    """口令相关错误的基类。"""


class PassphraseMismatchError(PassphraseError):
    pass


class EmptyPassphraseError(PassphraseError):
    pass


class WrongPassphraseError(PassphraseError):
    """口令错误或私钥文件损坏，无法解密。"""


class TerminalUnavailableError(PassphraseError):
    """没有可用的控制终端，无法读取口令。"""


class OutputExistsError(MkcertError, FileExistsError):
    """输出文件已存在，拒绝覆盖。"""


class MissingFileError(MkcertError, FileNotFoundError):
    """所需的输入文件不存在。"""
