# jogofacil/integrations.py
"""
Third-party integrations for Jogo Fácil
- WhatsApp: deep links used for the payment handoff between captain and field
- Google Maps: search links for field addresses
- Gemini: PIX receipt verification through the OpenAI-compatible endpoint
"""

from __future__ import annotations

import base64
import json
import os
import re
from datetime import date
from typing import Optional
from urllib.parse import quote, urlencode

from dotenv import load_dotenv
from openai import OpenAI

from jogofacil import schemas

load_dotenv()

GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

APP_NAME = "Jogo Fácil"


# ------------------------------------------------------------------
# WhatsApp / Maps
# ------------------------------------------------------------------

def clean_phone(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def whatsapp_link(phone: Optional[str], text: str) -> Optional[str]:
    digits = clean_phone(phone)
    if not digits:
        return None
    return f"https://wa.me/{digits}?text={quote(text, safe='')}"


def maps_link(location: Optional[str]) -> Optional[str]:
    if not (location or "").strip():
        return None
    return "https://www.google.com/maps/search/?" + urlencode({"api": 1, "query": location.strip()})


def format_br_date(value) -> str:
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return "/".join(reversed(str(value).split("-")))


def booking_request_message(team_name: str, match_type: str, slot_date, slot_time: str, opponent_name: Optional[str] = None) -> str:
    text = (
        f"Olá, sou do time {team_name}. Solicitei o agendamento ({match_type}) no App {APP_NAME} "
        f"para o dia {format_br_date(slot_date)} às {slot_time}."
    )
    if match_type == "ALUGUEL" and opponent_name:
        text += f" Jogo contra: {opponent_name}."
    text += " Aguardo a chave PIX."
    return text


def field_enquiry_message(field_name: str) -> str:
    return f"Olá, vi seu campo {field_name} no {APP_NAME} e tenho uma dúvida."


def owner_to_team_message(team_name: str, field_name: str, slot_date, slot_time: str) -> str:
    return (
        f"Olá {team_name}, sou da {field_name}. Estou entrando em contato sobre o jogo "
        f"marcado para {format_br_date(slot_date)} às {slot_time}."
    )


# ------------------------------------------------------------------
# PIX receipt verification
# ------------------------------------------------------------------

VERIFICATION_FALLBACK_REASON = "Erro técnico na verificação da IA. Tente novamente ou contate o suporte."

VERIFICATION_SCHEMA = {
    "type": "object",
    "properties": {
        "isValid": {
            "type": "boolean",
            "description": "Whether the receipt appears to be a valid banking transaction for the correct amount.",
        },
        "amountFound": {
            "type": "number",
            "description": "The monetary amount found on the receipt.",
        },
        "dateFound": {
            "type": "string",
            "description": "The date and time found on the receipt.",
        },
        "reason": {
            "type": "string",
            "description": "A short explanation of why the receipt is valid or invalid.",
        },
    },
    "required": ["isValid", "reason"],
}

VERIFICATION_PROMPT = """
Você é um assistente financeiro anti-fraude para um aplicativo de futebol.
Analise esta imagem de comprovante PIX.

Dados esperados:
- Valor: R$ {amount}
- Destinatário (nome parcial ou chave): "{receiver}"

Verifique se:
1. É um comprovante bancário legítimo (não é meme, foto aleatória, etc).
2. O valor corresponde ao esperado (ou muito próximo).
3. A data é recente (hoje ou ontem).

Responda estritamente em JSON.
"""


def fallback_result() -> schemas.VerificationResult:
    return schemas.VerificationResult(
        is_valid=False,
        amount_found=None,
        date_found=None,
        reason=VERIFICATION_FALLBACK_REASON,
    )


class ReceiptVerifier:
    """Asks Gemini whether an uploaded PIX receipt matches the expected payment."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        temperature: float = 0.1,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            api_key = self.api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
            if not api_key:
                raise ValueError("GEMINI_API_KEY is not configured")
            self._client = OpenAI(api_key=api_key, base_url=self.base_url)
            print(f"[AI] Initialized receipt verifier: model={self.model}")
        return self._client

    def verify_pix_receipt(
        self,
        image: bytes,
        mime_type: str,
        expected_amount: float,
        expected_receiver: str,
    ) -> schemas.VerificationResult:
        try:
            if not image:
                raise ValueError("empty receipt image")
            encoded = base64.b64encode(image).decode("ascii")
            prompt = VERIFICATION_PROMPT.format(amount=expected_amount, receiver=expected_receiver or "")

            response = self._get_client().chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": f"data:{mime_type or 'image/jpeg'};base64,{encoded}"}},
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "pix_receipt_verification", "schema": VERIFICATION_SCHEMA},
                },
            )

            text = response.choices[0].message.content if response.choices else None
            if not text:
                raise ValueError("No response text from AI")

            data = json.loads(text)
            result = schemas.VerificationResult.model_validate(data)
            print(f"[AI] Receipt verified: valid={result.is_valid} amount={result.amount_found}")
            return result
        except Exception as e:
            print(f"[AI] Verification failed: {type(e).__name__}: {str(e)[:240]}")
            return fallback_result()


# Singleton instance
receipt_verifier = ReceiptVerifier()
