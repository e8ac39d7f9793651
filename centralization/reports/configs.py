"""Registry of report types and their request forms."""
from centralization.reports.fields import FieldConfig, ReportModalConfig, StepConfig
from centralization.reports.validators import non_blank, not_before, valid_date

PARAMS_TITLE = 'Параметры отчета'
PARAMS_DESCRIPTION = 'Заполните параметры для формирования отчёта'

YES_NO = [{'value': 'yes', 'label': 'Да'}, {'value': 'no', 'label': 'Нет'}]

BUDGET_ADMINS = [
    {'value': 'Иванов Иван Иванович', 'label': 'Иванов Иван Иванович',
     'description': 'Администратор бюджетных программ - Отдел финансов'},
    {'value': 'Петрова Елена Сергеевна', 'label': 'Петрова Елена Сергеевна',
     'description': 'Администратор бюджетных программ - Отдел экономики'},
    {'value': 'Сидоров Алексей Михайлович', 'label': 'Сидоров Алексей Михайлович',
     'description': 'Администратор бюджетных программ - Планово-экономический отдел'},
    {'value': 'Козлова Мария Александровна', 'label': 'Козлова Мария Александровна',
     'description': 'Администратор бюджетных программ - Финансовое управление'},
]


def _params_step(*fields):
    return StepConfig('params', PARAMS_TITLE, PARAMS_DESCRIPTION, fields)


def _period_range(start_description=None, end_description=None):
    return [
        FieldConfig('startPeriod', 'Начало периода', 'date', required=True,
                    validation=valid_date, description=start_description),
        FieldConfig('endPeriod', 'Конец периода', 'date', required=True,
                    validation=not_before('startPeriod'), description=end_description),
    ]


consolidated_statement = ReportModalConfig(
    'consolidated_statement', 'Сводная расчетная ведомость',
    'Сводный отчет "Расчетная ведомость организации"', '💰', 'blue',
    [_params_step(
        FieldConfig('registrationPeriod', 'Период регистрации', 'month', required=True,
                    description='Выберите месяц для формирования отчёта'),
        FieldConfig('byExpenseClassification', 'По классификации расходов', 'radio', required=True,
                    options=YES_NO, description='Группировать данные по классификации расходов'),
    )],
)

tariff_list = ReportModalConfig(
    'tariff_list', 'Сводный тарификационный список',
    'Сводный отчет по тарификации работников', '📋', 'orange',
    [_params_step(
        FieldConfig('reportVariant', 'Вариант отчёта', 'select', required=True, options=[
            'Общий',
            'Административно-управленческий персонал',
            'Административно-хозяйственный персонал',
            'Педагогические работники',
            'Хозяйственный персонал',
        ]),
        FieldConfig('registrationPeriod', 'Период регистрации', 'month', required=True),
        FieldConfig('detailedByClasses', 'Детальная по видам классов', 'radio', required=True,
                    options=YES_NO),
    )],
)

os_balance = ReportModalConfig(
    'os_balance', 'Сводная ведомость остатков ОС',
    'Ведомость остатков долгосрочных активов', '🏢', 'green',
    [_params_step(*_period_range())],
)

long_term_search = ReportModalConfig(
    'long_term_search', 'Поиск долгосрочных активов',
    'Отчет осуществляет поиск долгосрочных активов по организациям', '🔍', 'purple',
    [_params_step(
        *_period_range('Выберите начальную дату периода поиска', 'Выберите конечную дату периода поиска'),
        FieldConfig('searchMethod', 'Способ поиска', 'radio', required=True, default='contains',
                    options=[{'value': 'contains', 'label': 'Содержит'},
                             {'value': 'equals', 'label': 'Равно'}],
                    description='Выберите способ поиска по наименованию актива'),
        FieldConfig('searchText', 'Текст для поиска', 'text', required=True,
                    placeholder='Введите текст для поиска',
                    description='Наименование или часть наименования долгосрочного актива'),
    )],
)

tmz_balance = ReportModalConfig(
    'tmz_balance', 'Сводная ведомость остатков ТМЗ',
    'Ведомость остатков товарно-материальных запасов по данным бухгалтерского учета', '📦', 'indigo',
    [_params_step(
        FieldConfig('period', 'Период', 'date', required=True, validation=valid_date,
                    description='Выберите дату для формирования отчета по остаткам ТМЗ'),
    )],
)

expense_report = ReportModalConfig(
    'expense_report', 'Отчет по расходам по форме 4-20',
    'Отчет предоставляет данные плана финансирования', '💸', 'red',
    [_params_step(
        FieldConfig('period', 'Период', 'date', required=True, validation=valid_date),
        FieldConfig('budgetAdmin', 'Администратор бюджетных программ', 'search', required=True,
                    validation=non_blank, options=BUDGET_ADMINS,
                    description='Выберите администратора бюджетных программ'),
    )],
)

cash_flow = ReportModalConfig(
    'cash_flow', 'Сводный отчет об исполнении денежных средств',
    'Сводный отчет о движении денежных средств организаций за период', '💳', 'cyan',
    [_params_step(
        FieldConfig('period', 'Период', 'date', required=True, validation=valid_date,
                    description='Выберите дату для формирования отчета о движении денежных средств'),
    )],
)

employee_list = ReportModalConfig(
    'employee_list', 'Сводный список работников организации',
    'Отчет предоставляет полный реестр сотрудников всех организаций', '👥', 'pink',
    [_params_step(
        FieldConfig('period', 'Период', 'date', required=True, validation=valid_date,
                    description='Выберите дату для формирования списка работников'),
    )],
)

debt_report = ReportModalConfig(
    'debt_report', 'Сводный отчет по дебиторской и кредиторской задолженности',
    'Анализ дебиторской и кредиторской задолженности организаций', '📊', 'yellow',
    [_params_step(*_period_range('Выберите начальную дату периода анализа задолженности',
                                 'Выберите конечную дату периода анализа задолженности'))],
)

REPORT_CONFIGS = {
    c.id: c for c in (
        consolidated_statement,
        tariff_list,
        os_balance,
        expense_report,
        long_term_search,
        tmz_balance,
        cash_flow,
        employee_list,
        debt_report,
    )
}


def get_report_config(report_type):
    """Config for `report_type`, or None when it is not registered."""
    return REPORT_CONFIGS.get(report_type)


def all_report_configs():
    return list(REPORT_CONFIGS.values())
