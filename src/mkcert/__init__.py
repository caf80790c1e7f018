"""
mkcert：基于模板批量生成 RSA 密钥、自签名证书、CSR 以及 PKCS#12 打包的本地工具。
"""

__version__ = "0.4.0"
