class NfeSheetsError(Exception):
    """
    Exceção base para o projeto NFe Sheets.

    Attributes:
        categoria (str): Classe de falha usada pela camada HTTP para escolher
            o status ('entrada', 'nao_encontrado', 'infraestrutura',
            'timeout', 'cancelado').
        etapa (Optional[str]): Etapa do fluxo onde a falha ocorreu ('busca',
            'extracao', 'planilha'), preenchida pelo orquestrador.
    """
    categoria = 'infraestrutura'
    etapa = None


class MalformedDocumentError(NfeSheetsError):
    """Levantada quando o conteúdo não é um XML de NF-e (nfeProc) válido."""
    categoria = 'entrada'


class MissingKeyError(NfeSheetsError):
    """Levantada quando a chave da nota (Id do infNFe) está vazia."""
    categoria = 'entrada'


class DuplicateInvoiceError(NfeSheetsError):
    """Levantada quando a chave já foi importada neste processo."""
    categoria = 'entrada'

    def __init__(self, chave: str):
        super().__init__(
            f"a nota fiscal com chave {chave} já foi importada anteriormente"
        )
        self.chave = chave


class LookupProcessError(NfeSheetsError):
    """Levantada quando o programa de consulta por chave termina com erro."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class ResultNotFoundError(NfeSheetsError):
    """Levantada quando o programa de consulta não gera o XML esperado."""
    categoria = 'nao_encontrado'


class StoreUnavailableError(NfeSheetsError):
    """Levantada quando o Google Sheets não está inicializado ou a chamada falha."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class OperationTimeoutError(NfeSheetsError):
    """Levantada quando uma operação excede o tempo limite."""
    categoria = 'timeout'


class OperationCancelledError(NfeSheetsError):
    """Levantada quando o solicitante desiste da operação (desconexão)."""
    categoria = 'cancelado'


class CredentialsError(NfeSheetsError):
    """Levantada na inicialização quando não há credenciais do Google Sheets."""
