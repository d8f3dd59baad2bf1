"""
BambooHR careers connector.

https://{slug}.bamboohr.com/careers/list returns every open posting of a
company as JSON. The list carries no description, so the department and title
stand in for one.
"""
from typing import Dict, List

from core.errors import SourceFetchError
from pipeline.models import RawRecord

from .base import DIRECT_API, FetchContext, SourceConnector, format_company_name

API_URL = "https://{slug}.bamboohr.com/careers/list"
APPLY_URL = "https://{slug}.bamboohr.com/careers/{job_id}"

COMPANY_NAMES: Dict[str, str] = {
    'benchmarktherapy': 'Benchmark Therapy',
    'employhealth': 'EmployHealth',
    'arkoshealth': 'Arkos Health',
    'cyticlinics': 'CyTi Clinics',
    'baldwinfamilyhealthcare': 'Baldwin Family Health',
    'credentcare': 'Credent Care',
    'heritagehealthservices': 'Heritage Health',
    'relianthealthcaregroup': 'Reliant Healthcare',
    'bluetreehealth': 'Blue Tree Health',
    'everhomehealthcare': 'EverHome Healthcare',
    'loraincountyhealth': 'Lorain County Health',
    'minneolahealth': 'Minneola Healthcare',
    'clinicaromero': 'Clinica Romero',
    'helloavahealth': 'Ava Health',
    'jsashealthcare': 'JSAS Healthcare',
    'monroehealthcenter': 'Monroe Health Center',
}

BAMBOOHR_COMPANIES = list(COMPANY_NAMES)


class BambooHRConnector(SourceConnector):
    """BambooHR careers list API"""

    kind = DIRECT_API
    batch_width = 10
    batch_pause_seconds = 0.3

    def __init__(self):
        super().__init__(name="bamboohr", priority=70)

    def work_units(self, context: FetchContext) -> List[str]:
        return context.settings.companies_for(self.name) or list(BAMBOOHR_COMPANIES)

    async def fetch_unit(self, slug: str, context: FetchContext) -> List[RawRecord]:
        try:
            data = await context.http.fetch_json(
                API_URL.format(slug=slug),
                headers={'Accept': 'application/json'},
                source=self.name,
            )
        except SourceFetchError as e:
            if e.status_code == 404:
                self.logger.warning(f"[bamboohr] {slug}: careers site not found (404)")
                return []
            raise

        jobs = (data or {}).get('result') or []
        company = COMPANY_NAMES.get(slug) or format_company_name(slug)
        self.logger.info(f"[bamboohr] {slug}: {len(jobs)} postings fetched")
        return [self.map_job(job, slug, company) for job in jobs]

    def map_job(self, job: Dict, slug: str, company: str) -> RawRecord:
        title = job.get('jobOpeningName') or ''
        department = job.get('departmentLabel') or ''
        location = job.get('locationLabelAlt')
        if not location:
            place = job.get('location') or {}
            location = ', '.join(part for part in (place.get('city'), place.get('state')) if part)
        return self.record(
            external_id=f"bamboohr-{slug}-{job.get('id')}",
            title=title,
            employer=company,
            location=location or ('Remote' if job.get('isRemote') else ''),
            description=f"{department} - {title}" if department else title,
            apply_url=APPLY_URL.format(slug=slug, job_id=job.get('id')),
            job_type=job.get('employmentStatusLabel'),
            is_remote=job.get('isRemote'),
        )
