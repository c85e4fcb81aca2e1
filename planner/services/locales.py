from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class DayLabels:
    today: str
    tomorrow: str
    no_due_date: str
    weekdays: tuple[str, ...]  # Monday first, matching date.weekday()
    months: tuple[str, ...]

    def day_label(self, day: date) -> str:
        return f"{self.weekdays[day.weekday()]}, {self.months[day.month - 1]} {day.day}"


class LocaleRegistry:
    """Language code to day labels, built once at startup and passed around."""

    def __init__(self, labels: dict[str, DayLabels], default: str = DEFAULT_LANGUAGE) -> None:
        if default not in labels:
            raise ValueError(f"default language {default!r} has no labels")
        self._labels = dict(labels)
        self._default = default

    def resolve(self, language: str | None) -> DayLabels:
        if language and language in self._labels:
            return self._labels[language]
        if language:
            logger.debug("No day labels for %r, using %s", language, self._default)
        return self._labels[self._default]

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(self._labels)


_LABELS = {
    "en": DayLabels(
        "Today",
        "Tomorrow",
        "No Due Date",
        ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        ("January", "February", "March", "April", "May", "June", "July",
         "August", "September", "October", "November", "December"),
    ),
    "de": DayLabels(
        "Heute",
        "Morgen",
        "Kein Fälligkeitsdatum",
        ("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"),
        ("Januar", "Februar", "März", "April", "Mai", "Juni", "Juli",
         "August", "September", "Oktober", "November", "Dezember"),
    ),
    "es": DayLabels(
        "Hoy",
        "Mañana",
        "Sin fecha de vencimiento",
        ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"),
        ("enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
         "agosto", "septiembre", "octubre", "noviembre", "diciembre"),
    ),
    "fr": DayLabels(
        "Aujourd'hui",
        "Demain",
        "Pas de date d'échéance",
        ("lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"),
        ("janvier", "février", "mars", "avril", "mai", "juin", "juillet",
         "août", "septembre", "octobre", "novembre", "décembre"),
    ),
    "it": DayLabels(
        "Oggi",
        "Domani",
        "Nessuna scadenza",
        ("lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica"),
        ("gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno", "luglio",
         "agosto", "settembre", "ottobre", "novembre", "dicembre"),
    ),
    "nl": DayLabels(
        "Vandaag",
        "Morgen",
        "Geen deadline",
        ("maandag", "dinsdag", "woensdag", "donderdag", "vrijdag", "zaterdag", "zondag"),
        ("januari", "februari", "maart", "april", "mei", "juni", "juli",
         "augustus", "september", "oktober", "november", "december"),
    ),
    "pt": DayLabels(
        "Hoje",
        "Amanhã",
        "Sem prazo",
        ("segunda-feira", "terça-feira", "quarta-feira", "quinta-feira", "sexta-feira",
         "sábado", "domingo"),
        ("janeiro", "fevereiro", "março", "abril", "maio", "junho", "julho",
         "agosto", "setembro", "outubro", "novembro", "dezembro"),
    ),
    "pl": DayLabels(
        "Dzisiaj",
        "Jutro",
        "Brak terminu",
        ("poniedziałek", "wtorek", "środa", "czwartek", "piątek", "sobota", "niedziela"),
        ("styczeń", "luty", "marzec", "kwiecień", "maj", "czerwiec", "lipiec",
         "sierpień", "wrzesień", "październik", "listopad", "grudzień"),
    ),
    "ru": DayLabels(
        "Сегодня",
        "Завтра",
        "Нет срока",
        ("понедельник", "вторник", "среда", "четверг", "пятница", "суббота", "воскресенье"),
        ("январь", "февраль", "март", "апрель", "май", "июнь", "июль",
         "август", "сентябрь", "октябрь", "ноябрь", "декабрь"),
    ),
    "ua": DayLabels(
        "Сьогодні",
        "Завтра",
        "Немає терміну",
        ("понеділок", "вівторок", "середа", "четвер", "пʼятниця", "субота", "неділя"),
        ("січень", "лютий", "березень", "квітень", "травень", "червень", "липень",
         "серпень", "вересень", "жовтень", "листопад", "грудень"),
    ),
    "sv": DayLabels(
        "Idag",
        "Imorgon",
        "Ingen deadline",
        ("måndag", "tisdag", "onsdag", "torsdag", "fredag", "lördag", "söndag"),
        ("januari", "februari", "mars", "april", "maj", "juni", "juli",
         "augusti", "september", "oktober", "november", "december"),
    ),
    "ar": DayLabels(
        "اليوم",
        "غداً",
        "لا يوجد تاريخ استحقاق",
        ("الاثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة", "السبت", "الأحد"),
        ("يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو", "يوليو",
         "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر"),
    ),
    "bg": DayLabels(
        "Днес",
        "Утре",
        "Няма краен срок",
        ("понеделник", "вторник", "сряда", "четвъртък", "петък", "събота", "неделя"),
        ("януари", "февруари", "март", "април", "май", "юни", "юли",
         "август", "септември", "октомври", "ноември", "декември"),
    ),
    "da": DayLabels(
        "I dag",
        "I morgen",
        "Ingen frist",
        ("mandag", "tirsdag", "onsdag", "torsdag", "fredag", "lørdag", "søndag"),
        ("januar", "februar", "marts", "april", "maj", "juni", "juli",
         "august", "september", "oktober", "november", "december"),
    ),
    "el": DayLabels(
        "Σήμερα",
        "Αύριο",
        "Χωρίς προθεσμία",
        ("Δευτέρα", "Τρίτη", "Τετάρτη", "Πέμπτη", "Παρασκευή", "Σάββατο", "Κυριακή"),
        ("Ιανουάριος", "Φεβρουάριος", "Μάρτιος", "Απρίλιος", "Μάιος", "Ιούνιος", "Ιούλιος",
         "Αύγουστος", "Σεπτέμβριος", "Οκτώβριος", "Νοέμβριος", "Δεκέμβριος"),
    ),
    "fi": DayLabels(
        "Tänään",
        "Huomenna",
        "Ei määräaikaa",
        ("maanantai", "tiistai", "keskiviikko", "torstai", "perjantai", "lauantai", "sunnuntai"),
        ("tammikuu", "helmikuu", "maaliskuu", "huhtikuu", "toukokuu", "kesäkuu", "heinäkuu",
         "elokuu", "syyskuu", "lokakuu", "marraskuu", "joulukuu"),
    ),
    "id": DayLabels(
        "Hari ini",
        "Besok",
        "Tidak ada tanggal jatuh tempo",
        ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"),
        ("Januari", "Februari", "Maret", "April", "Mei", "Juni", "Juli",
         "Agustus", "September", "Oktober", "November", "Desember"),
    ),
    "jp": DayLabels(
        "今日",
        "明日",
        "期限なし",
        ("月曜日", "火曜日", "水曜日", "木曜日", "金曜日", "土曜日", "日曜日"),
        ("1月", "2月", "3月", "4月", "5月", "6月", "7月",
         "8月", "9月", "10月", "11月", "12月"),
    ),
    "ko": DayLabels(
        "오늘",
        "내일",
        "마감일 없음",
        ("월요일", "화요일", "수요일", "목요일", "금요일", "토요일", "일요일"),
        ("1월", "2월", "3월", "4월", "5월", "6월", "7월",
         "8월", "9월", "10월", "11월", "12월"),
    ),
    "no": DayLabels(
        "I dag",
        "I morgen",
        "Ingen frist",
        ("mandag", "tirsdag", "onsdag", "torsdag", "fredag", "lørdag", "søndag"),
        ("januar", "februar", "mars", "april", "mai", "juni", "juli",
         "august", "september", "oktober", "november", "desember"),
    ),
    "ro": DayLabels(
        "Astăzi",
        "Mâine",
        "Fără termen limită",
        ("luni", "marți", "miercuri", "joi", "vineri", "sâmbătă", "duminică"),
        ("ianuarie", "februarie", "martie", "aprilie", "mai", "iunie", "iulie",
         "august", "septembrie", "octombrie", "noiembrie", "decembrie"),
    ),
    "sl": DayLabels(
        "Danes",
        "Jutri",
        "Ni roka",
        ("ponedeljek", "torek", "sreda", "četrtek", "petek", "sobota", "nedelja"),
        ("januar", "februar", "marec", "april", "maj", "junij", "julij",
         "avgust", "september", "oktober", "november", "december"),
    ),
    "tr": DayLabels(
        "Bugün",
        "Yarın",
        "Son tarih yok",
        ("Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi", "Pazar"),
        ("Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran", "Temmuz",
         "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık"),
    ),
    "vi": DayLabels(
        "Hôm nay",
        "Ngày mai",
        "Không có hạn",
        ("thứ hai", "thứ ba", "thứ tư", "thứ năm", "thứ sáu", "thứ bảy", "chủ nhật"),
        ("tháng 1", "tháng 2", "tháng 3", "tháng 4", "tháng 5", "tháng 6", "tháng 7",
         "tháng 8", "tháng 9", "tháng 10", "tháng 11", "tháng 12"),
    ),
    "zh": DayLabels(
        "今天",
        "明天",
        "无截止日期",
        ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日"),
        ("一月", "二月", "三月", "四月", "五月", "六月", "七月",
         "八月", "九月", "十月", "十一月", "十二月"),
    ),
}


def build_locale_registry(default: str = DEFAULT_LANGUAGE) -> LocaleRegistry:
    return LocaleRegistry(_LABELS, default=default if default in _LABELS else DEFAULT_LANGUAGE)
