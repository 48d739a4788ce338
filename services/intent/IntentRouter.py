"""Intent router.

FAQ keywords are checked first and need no model call. Everything else is
classified by a small model; unknown labels, low confidence and classifier
failures all route to retrieval.
"""

import re

import pydantic

from services.intent import prompts
from services.intent.FAQMatcher import FAQMatcher
from services.intent.ResponseGenerator import ResponseGenerator
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import CredentialError
from shared.models.bot import FAQ, Bot
from shared.models.conversation import GeneratedResponse, Message
from shared.models.intent import INTENT_ALIASES, ClassifierResponse, IntentResult, IntentType
from shared.models.settings import PipelineSettings

UNKNOWN_TYPE_CONFIDENCE = 0.5

_JSON_OBJECT = re.compile(r"\{.*?\}", re.DOTALL)


def resolve_intent_type(label: str) -> IntentType | None:
    if label in INTENT_ALIASES:
        return INTENT_ALIASES[label]
    try:
        return IntentType(label)
    except ValueError:
        return None


class IntentRouter:
    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        response_generator: ResponseGenerator,
        faq_matcher: FAQMatcher | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._generator = response_generator
        self._faq_matcher = faq_matcher or FAQMatcher()
        self._settings = settings or PipelineSettings.from_config(helper_config)

    ##########################################
    ################## FAQ ###################
    ##########################################

    def match_faq(self, message: str, bot: Bot) -> FAQ | None:
        faq = self._faq_matcher.match(message, bot)
        if faq:
            self.logging.info("FAQ match for bot '%s': %s", bot.id, faq.question or faq.keywords[0])
        return faq

    ##########################################
    ############ CLASSIFICATION ##############
    ##########################################

    async def classify(self, message: str, bot: Bot, credential: str) -> IntentResult:
        """Classify a message. Never raises.

        Returns:
            IntentResult: NEEDS_RETRIEVAL with confidence 0.0 if the classifier call
            or its answer fails, with confidence 0.5 for an unknown label, and with
            the classifier's confidence if it is below the threshold. A rejected
            credential is reported in ``credential_error``.
        """
        try:
            completion = await self._llm_client.do_chat(
                [
                    {"role": "system", "content": prompts.CLASSIFIER_SYSTEM_PROMPT.format(bot_context=prompts.describe_bot(bot))},
                    {"role": "user", "content": message},
                ],
                api_key=credential,
                model=self._settings.classifier_model,
                temperature=0.1,
                max_tokens=50,
                json_mode=True,
            )
            answer = self.parse_classifier_answer(completion.content)
        except CredentialError as e:
            self.logging.error("Classifier rejected the credential of bot '%s': %s", bot.id, e)
            return IntentResult(type=IntentType.NEEDS_RETRIEVAL, confidence=0.0, credential_error=e.error_code)
        except Exception as e:
            self.logging.warning("Intent classification failed for bot '%s': %s. Defaulting to retrieval.", bot.id, e)
            return IntentResult(type=IntentType.NEEDS_RETRIEVAL, confidence=0.0)

        tokens = completion.total_tokens
        intent_type = resolve_intent_type(answer.type)
        if intent_type is None:
            self.logging.warning("Classifier returned unknown intent '%s'. Defaulting to retrieval.", answer.type)
            return IntentResult(type=IntentType.NEEDS_RETRIEVAL, confidence=UNKNOWN_TYPE_CONFIDENCE, tokens_used=tokens)

        if answer.confidence < self._settings.intent_confidence_threshold:
            self.logging.info(
                "Classifier confidence %.2f for '%s' is below %.2f. Defaulting to retrieval.",
                answer.confidence, intent_type.value, self._settings.intent_confidence_threshold,
            )
            return IntentResult(type=IntentType.NEEDS_RETRIEVAL, confidence=answer.confidence, tokens_used=tokens)

        self.logging.debug("Classified message as %s (%.2f).", intent_type.value, answer.confidence)
        return IntentResult(type=intent_type, confidence=answer.confidence, tokens_used=tokens)

    @staticmethod
    def parse_classifier_answer(content: str) -> ClassifierResponse:
        """Parse the first JSON object in the classifier's answer.

        Raises:
            ValueError: If no valid {"type", "confidence"} object is found.
        """
        found = _JSON_OBJECT.search(content or "")
        if not found:
            raise ValueError(f"Classifier answer contains no JSON object: {content!r}")
        try:
            return ClassifierResponse.model_validate_json(found.group(0))
        except pydantic.ValidationError as e:
            raise ValueError(f"Classifier answer is not a valid intent object: {e}")

    ##########################################
    ################ DISPATCH ################
    ##########################################

    async def dispatch(self, intent: IntentResult, bot: Bot, message: str, history: list[Message], credential: str) -> GeneratedResponse:
        """Run the response strategy of the given intent."""
        if intent.type == IntentType.SMALL_TALK:
            return self._generator.generate_small_talk(bot, message)
        if intent.type == IntentType.GENERAL_CHAT:
            return await self._generator.generate_general(bot, message, history, credential)
        return await self._generator.generate_grounded(bot, message, history, credential)
