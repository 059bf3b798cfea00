"""
Demo dataset used in mock mode: three diagnostics, a handful of controls
and measures, and one program (id 1) with a mix of answered, unanswered
and "Não se aplica" responses.
"""

from __future__ import annotations

from typing import Any

DEMO_PROGRAM_ID = 1


def demo_tables() -> dict[str, list[dict[str, Any]]]:
    """Return fresh copies of every demo table."""
    diagnostico = [
        {"id": 1, "descricao": "Estrutura Básica de Gestão em Privacidade e Segurança da Informação"},
        {"id": 2, "descricao": "Segurança da Informação"},
        {"id": 3, "descricao": "Privacidade"},
    ]
    controle = [
        {"id": 1, "numero": 0, "nome": "Estrutura Básica", "texto": "Estrutura de governança mínima.", "diagnostico": 1},
        {"id": 2, "numero": 1, "nome": "Inventário de Ativos", "texto": "Ativos de informação identificados.", "diagnostico": 2},
        {"id": 3, "numero": 2, "nome": "Controle de Acesso", "texto": "Acesso concedido por necessidade.", "diagnostico": 2},
        {"id": 4, "numero": 3, "nome": "Gestão de Vulnerabilidades", "texto": "Vulnerabilidades tratadas.", "diagnostico": 2},
        {"id": 5, "numero": 19, "nome": "Inventário de Dados Pessoais", "texto": "Operações de tratamento mapeadas.", "diagnostico": 3},
        {"id": 6, "numero": 20, "nome": "Consentimento", "texto": "Bases legais registradas.", "diagnostico": 3},
    ]
    medida = [
        {"id": 1, "id_medida": "0.1", "texto": "Há um encarregado de dados designado.", "id_controle": 1},
        {"id": 2, "id_medida": "0.2", "texto": "Há política de segurança aprovada.", "id_controle": 1},
        {"id": 3, "id_medida": "1.1", "texto": "Os ativos estão inventariados.", "id_controle": 2},
        {"id": 4, "id_medida": "1.2", "texto": "Os ativos têm responsáveis definidos.", "id_controle": 2},
        {"id": 5, "id_medida": "2.1", "texto": "Contas privilegiadas são revisadas.", "id_controle": 3},
        {"id": 6, "id_medida": "2.2", "texto": "Autenticação multifator é exigida.", "id_controle": 3},
        {"id": 7, "id_medida": "3.1", "texto": "Varreduras periódicas são executadas.", "id_controle": 4},
        {"id": 8, "id_medida": "19.1", "texto": "Registro das operações de tratamento.", "id_controle": 5},
        {"id": 9, "id_medida": "19.2", "texto": "Fluxo de dados documentado.", "id_controle": 5},
        {"id": 10, "id_medida": "20.1", "texto": "Consentimentos são registrados.", "id_controle": 6},
    ]
    programa_controle = [
        {"id": 101, "programa": DEMO_PROGRAM_ID, "controle": 1, "nivel": 2},
        {"id": 102, "programa": DEMO_PROGRAM_ID, "controle": 2, "nivel": 3},
        {"id": 103, "programa": DEMO_PROGRAM_ID, "controle": 3, "nivel": 1},
        {"id": 104, "programa": DEMO_PROGRAM_ID, "controle": 4, "nivel": 0},
        {"id": 105, "programa": DEMO_PROGRAM_ID, "controle": 5, "nivel": 4},
        {"id": 106, "programa": DEMO_PROGRAM_ID, "controle": 6, "nivel": 0},
    ]
    programa_medida = [
        {"id": 1001, "programa": DEMO_PROGRAM_ID, "medida": 1, "resposta": 1},
        {"id": 1002, "programa": DEMO_PROGRAM_ID, "medida": 2, "resposta": 2},
        {"id": 1003, "programa": DEMO_PROGRAM_ID, "medida": 3, "resposta": 1,
         "justificativa": "Inventário revisado em 2024."},
        {"id": 1004, "programa": DEMO_PROGRAM_ID, "medida": 4, "resposta": 3},
        {"id": 1005, "programa": DEMO_PROGRAM_ID, "medida": 5, "resposta": 4,
         "previsao_inicio": "2025-01-15", "previsao_fim": "2025-06-30",
         "status_medida": 2, "status_plano_acao": 4},
        {"id": 1006, "programa": DEMO_PROGRAM_ID, "medida": 6, "resposta": None},
        {"id": 1007, "programa": DEMO_PROGRAM_ID, "medida": 7, "resposta": 6},
        {"id": 1008, "programa": DEMO_PROGRAM_ID, "medida": 8, "resposta": 2},
        {"id": 1009, "programa": DEMO_PROGRAM_ID, "medida": 9, "resposta": 1},
        {"id": 1010, "programa": DEMO_PROGRAM_ID, "medida": 10, "resposta": 6},
    ]
    return {
        "diagnostico": diagnostico,
        "controle": controle,
        "medida": medida,
        "programa_controle": programa_controle,
        "programa_medida": programa_medida,
    }
