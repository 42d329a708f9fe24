import asyncio

from castbot.classifier import IntentClassifier, RETRY_SCHEDULE_MESSAGE
from castbot.intents import ScheduleIntent, SearchIntent, TalkIntent, format_confirmation
from castbot.router import IntentRouter
from conftest import FakeCompletion


def _router(service, clock):
    return IntentRouter(classifier=IntentClassifier(service), clock=clock)


def test_deterministic_match_skips_generative_service(clock):
    service = FakeCompletion("TALK:should not be used")
    intent = asyncio.run(_router(service, clock).route("月曜日の8時にRebuildを再生して"))

    assert isinstance(intent, ScheduleIntent)
    assert (intent.request.day_of_week, intent.request.hour, intent.request.minute) == (1, 8, 0)
    assert intent.request.keyword == "Rebuild"
    assert service.prompts == []


def test_spaced_deterministic_match(clock):
    service = FakeCompletion()
    intent = asyncio.run(_router(service, clock).route("火曜7時 ニュース"))

    assert isinstance(intent, ScheduleIntent)
    assert (intent.request.day_of_week, intent.request.hour, intent.request.minute) == (2, 7, 0)
    assert intent.request.keyword == "ニュース"
    assert service.prompts == []


def test_out_of_range_hour_falls_through_to_classifier(clock):
    service = FakeCompletion("TALK:25時は指定できません")
    intent = asyncio.run(_router(service, clock).route("月曜25時に何か"))

    assert intent == TalkIntent(content="25時は指定できません")
    assert len(service.prompts) == 1
    assert "Now: 1/20 (day_of_week=1," in service.prompts[0]


def test_minutes_fall_through_to_classifier(clock):
    service = FakeCompletion('SCHEDULE:{"day_of_week":1,"hour":8,"minute":30,"keyword":"Rebuild","message":"ok"}')
    intent = asyncio.run(_router(service, clock).route("月曜8時30分にRebuild"))

    assert isinstance(intent, ScheduleIntent)
    assert (intent.request.day_of_week, intent.request.hour, intent.request.minute) == (1, 8, 30)
    assert intent.request.keyword == "Rebuild"
    assert len(service.prompts) == 1


def test_generative_schedule_is_range_checked(clock):
    service = FakeCompletion('SCHEDULE:{"day_of_week":9,"hour":8,"minute":0,"keyword":"Rebuild","message":"ok"}')
    intent = asyncio.run(_router(service, clock).route("来週のどこかで8時にRebuild"))

    assert intent == TalkIntent(content=RETRY_SCHEDULE_MESSAGE)


def test_generative_schedule_and_search(clock):
    service = FakeCompletion('SCHEDULE:{"day_of_week":2,"hour":12,"minute":45,"keyword":"ランダム","message":"明日12:45ですね"}')
    intent = asyncio.run(_router(service, clock).route("明日12時45分に何か流して"))
    assert isinstance(intent, ScheduleIntent)
    assert format_confirmation(intent) == "明日12:45ですね\n\n📻 番組: ランダム\n🗓 時間: 火曜日 12:45"

    service = FakeCompletion("SEARCH:歴史")
    intent = asyncio.run(_router(service, clock).route("歴史の番組を探して"))
    assert intent == SearchIntent(term="歴史")


def test_unmarked_generative_reply_is_returned_verbatim(clock):
    service = FakeCompletion("なるほど、いいですね！")
    intent = asyncio.run(_router(service, clock).route("今日はいい天気"))
    assert intent == TalkIntent(content="なるほど、いいですね！")


def test_missing_credentials_short_circuit(clock):
    service = FakeCompletion(enabled=False)
    intent = asyncio.run(_router(service, clock).route("こんにちは"))
    assert isinstance(intent, TalkIntent)
    assert "GEMINI_API_KEY" in intent.content
    assert service.prompts == []


def test_router_is_safe_to_run_concurrently(clock):
    service = FakeCompletion("TALK:hi")
    router = _router(service, clock)

    async def run_all():
        return await asyncio.gather(
            router.route("月曜8時にA"),
            router.route("hello"),
            router.route("金曜21時にB"),
        )

    a, b, c = asyncio.run(run_all())
    assert a.request.keyword == "A"
    assert b == TalkIntent(content="hi")
    assert c.request.day_of_week == 5
    assert len(service.prompts) == 1
