import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from dotenv import load_dotenv

# Carrega as variáveis do arquivo .env para o ambiente
load_dotenv()

# Caminhos Base
BASE_DIR = Path(__file__).resolve().parent.parent

# Diretório onde o programa de consulta grava os XMLs (NFe_<chave>.xml)
DIR_NFES = Path(os.getenv('NFE_OUTPUT_DIR', str(BASE_DIR / "nfes")))

# --- Caminhos de Binários Externos ---
# Centralizamos aqui para não espalhar caminhos pelo código
NFE_LOOKUP_EXECUTABLE = os.getenv('NFE_LOOKUP_EXECUTABLE', str(BASE_DIR / "NfePorChaveGo"))

# --- Credenciais do Google Sheets ---
# Prioridade 1: arquivo local. Prioridade 2: variável de ambiente em Base64.
CREDENTIALS_FILE = Path(os.getenv('CREDENTIALS_FILE', str(BASE_DIR / "credentials.json")))
CREDENTIALS_BASE64 = os.getenv('CREDENTIALS_BASE64', '')

# --- Planilha de destino ---
SPREADSHEET_ID = os.getenv('SPREADSHEET_ID', '1x4a-gJyjHVxNKBy0bsuAE40vpt5Y9O9f5xEEF7W-fcE')

# Aba principal: recebe as notas importadas e controla a duplicidade
NOTA_FISCAL_SHEET = os.getenv('NOTA_FISCAL_SHEET', 'NOTA FISCAL')

# Colunas lidas na busca de dados de uma aba
READ_COLUMNS = 'A:Z'

# --- Timeouts (segundos) ---
# Importação (XML direto ou por chave) e manutenção (leitura, atualização, limpeza)
INGEST_TIMEOUT_SECONDS = float(os.getenv('INGEST_TIMEOUT_SECONDS', '30'))
MAINTENANCE_TIMEOUT_SECONDS = float(os.getenv('MAINTENANCE_TIMEOUT_SECONDS', '15'))

# --- Servidor HTTP ---
PORT = int(os.getenv('PORT', '10000'))  # Porta padrão do Render Free Tier
FRONTEND_URL = os.getenv('FRONTEND_URL', 'https://nfefront.netlify.app')

if not CREDENTIALS_FILE.exists() and not CREDENTIALS_BASE64:
    print("⚠️ AVISO: credentials.json não encontrado e CREDENTIALS_BASE64 não definido")

# --- Configuração de Logging com Rotação ---
# RotatingFileHandler evita crescimento descontrolado de logs
LOG_DIR = BASE_DIR / "logs"
LOG_FILE = LOG_DIR / "nfe_sheets.log"
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Formato detalhado para auditoria
log_formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)


def setup_logging() -> logging.Logger:
    """
    Configura o logger raiz com arquivo rotativo e console.

    Os módulos usam logging.getLogger(__name__), então os handlers ficam
    no logger raiz. Chamado uma única vez pelo bootstrap do servidor.

    Returns:
        logging.Logger: Logger raiz configurado
    """
    root = logging.getLogger()
    if getattr(root, '_nfe_sheets_configured', False):
        return root

    LOG_DIR.mkdir(exist_ok=True)
    root.setLevel(LOG_LEVEL)

    # Handler com rotação: 10MB por arquivo, mantém 5 backups
    rotating_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    rotating_handler.setFormatter(log_formatter)
    root.addHandler(rotating_handler)

    # Também envia para console
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)
    root.addHandler(console_handler)

    root._nfe_sheets_configured = True
    return root
